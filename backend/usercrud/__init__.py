"""Application package for the user CRUD backend.

This package exposes the service, repository and model modules used by
the FastAPI application and the Kafka worker. It is intentionally
lightweight; individual modules contain the concrete implementations and
documentation.
"""
