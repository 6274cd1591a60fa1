"""Password hashing, JWT signing and the FastAPI security dependency.

`Signature` wraps passlib and PyJWT behind the four operations the
services need. `get_current_user` validates the bearer token on a request
and returns the matching `User`; any authentication issue raises
`Unauthenticated` so the API answers with 401.
"""

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session
from .exceptions import Unauthenticated
from .schemas import JwtAuthenticationRes

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


class Signature:
    def __init__(self, secret: str, algorithm: str = "HS256", expire_hours: int = 1, issuer: str = "usercrud"):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_hours = expire_hours
        self.issuer = issuer

    def hash_password(self, password: str) -> str:
        return PWD_CTX.hash(password)

    def check_password_hash(self, password: str, hashed: str) -> bool:
        try:
            return PWD_CTX.verify(password, hashed)
        except ValueError:
            # stored value is not a recognised hash
            return False

    def generate_jwt(self, username: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "username": username,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=self.expire_hours)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def jwt_check(self, token: str) -> JwtAuthenticationRes:
        """Verify `token` and return the username it was issued for."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm], issuer=self.issuer)
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("token expired")
        except jwt.InvalidTokenError as e:
            raise Unauthenticated(f"invalid token, {e}")
        username = payload.get("username")
        if not username:
            raise Unauthenticated("invalid token payload")
        return JwtAuthenticationRes(username=username, token=token)


signature = Signature(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_EXPIRE_HOURS, settings.APP_NAME)


def get_signature() -> Signature:
    return signature


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_session),
    signer: Signature = Depends(get_signature),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The bearer token is verified, then the user is loaded by login name
    so tokens issued to deleted accounts stop working. The username and the
    raw token are stored on `request.state` for handlers that need them.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated("Invalid token")
    res = signer.jwt_check(credentials.credentials)
    user_repo = repositories.UserRepository(db)
    # accounts registered with an email only are issued tokens for the email
    user = user_repo.find_by_column("username", res.username) or user_repo.find_by_column("email", res.username)
    if not user:
        raise Unauthenticated("user not found")
    request.state.username = res.username
    request.state.access_token = res.token
    return user
