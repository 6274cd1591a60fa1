from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from usercrud.auth import Signature
from usercrud.exceptions import Unauthenticated
from usercrud.main import app

client = TestClient(app)

PASSWORD = "SecurePass123!"


def _register_and_login(username="testuser", password=PASSWORD):
    r = client.post('/auth/register', json={'username': username, 'password': password})
    assert r.status_code == 200
    r2 = client.post('/auth/login', json={'username': username, 'password': password})
    assert r2.status_code == 200
    return r2.json()['data']['token']


def test_register_login_and_fetch_users():
    r = client.post('/auth/register', json={'username': 'testuser', 'email': 'test@example.com', 'password': PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body['response_code'] == 200
    assert body['data']['username'] == 'testuser'
    assert 'password' not in body['data']
    r2 = client.post('/auth/login', json={'username': 'testuser', 'password': PASSWORD})
    assert r2.status_code == 200
    token = r2.json()['data']['token']
    # protected endpoint rejects a missing token
    r3 = client.get('/users')
    assert r3.status_code == 401
    assert r3.json()['response_message'] == 'Invalid token'
    headers = {'Authorization': f'Bearer {token}'}
    r4 = client.get('/users', headers=headers)
    assert r4.status_code == 200
    assert r4.json()['pagination']['total_data'] == 1


def test_login_by_email_when_username_missing():
    client.post('/auth/register', json={'email': 'only@example.com', 'password': PASSWORD})
    r = client.post('/auth/login', json={'email': 'only@example.com', 'password': PASSWORD})
    assert r.status_code == 200
    token = r.json()['data']['token']
    r2 = client.get('/users', headers={'Authorization': f'Bearer {token}'})
    assert r2.status_code == 200


def test_login_errors():
    _register_and_login()
    r = client.post('/auth/login', json={'username': 'ghost', 'password': PASSWORD})
    assert r.status_code == 404
    assert r.json()['response_message'] == 'username/email not found'
    r2 = client.post('/auth/login', json={'username': 'testuser', 'password': 'OtherPass123!'})
    assert r2.status_code == 403
    assert r2.json()['response_message'] == 'username/password unmatched'


def test_register_rejects_weak_password_and_duplicates():
    r = client.post('/auth/register', json={'username': 'weak', 'password': 'short'})
    assert r.status_code == 400
    assert r.json()['response_message'] == 'invalid request body'
    assert r.json()['error'] == {'password': 'password must be greater than or equal to 8'}
    r2 = client.post('/auth/register', json={'password': PASSWORD})
    assert r2.status_code == 400
    assert r2.json()['error'] == {'body': 'either email or username must be filled'}
    r_email = client.post('/auth/register', json={'username': 'mail', 'email': 'nope', 'password': PASSWORD})
    assert r_email.json()['error'] == {'email': 'email is not a valid email'}
    _register_and_login('dupe')
    r3 = client.post('/auth/register', json={'username': 'DUPE', 'password': PASSWORD})
    assert r3.status_code == 403
    assert r3.json()['response_message'] == 'username already exists'


def test_malformed_body_is_bad_request():
    r = client.post('/auth/register', content='{"invalid_json"}', headers={'Content-Type': 'application/json'})
    assert r.status_code == 400
    assert r.json()['response_code'] == 400


def test_invalid_token_rejected():
    headers = {'Authorization': 'Bearer invalid.token.here'}
    r = client.get('/users', headers=headers)
    assert r.status_code == 401
    assert r.json()['response_message'].startswith('invalid token')


def test_token_for_deleted_user_rejected():
    token = _register_and_login()
    headers = {'Authorization': f'Bearer {token}'}
    me = client.get('/users', headers=headers).json()['data'][0]
    assert client.delete(f"/users/{me['id']}", headers=headers).status_code == 200
    r = client.get('/users', headers=headers)
    assert r.status_code == 401


def test_signature_roundtrip_and_expiry():
    signer = Signature("a-test-secret-that-is-long-enough-for-hs256", expire_hours=1)
    hashed = signer.hash_password(PASSWORD)
    assert hashed != PASSWORD
    assert signer.check_password_hash(PASSWORD, hashed)
    assert not signer.check_password_hash("nope", hashed)
    assert not signer.check_password_hash(PASSWORD, "not-a-hash")
    token = signer.generate_jwt("alice")
    assert signer.jwt_check(token).username == "alice"
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    expired = jwt.encode(
        {"username": "alice", "iss": signer.issuer, "exp": int(past.timestamp())},
        signer.secret,
        algorithm="HS256",
    )
    with pytest.raises(Unauthenticated) as exc:
        signer.jwt_check(expired)
    assert exc.value.message == "token expired"
    other = Signature("another-secret-that-is-long-enough-for-hs256")
    with pytest.raises(Unauthenticated):
        other.jwt_check(token)
