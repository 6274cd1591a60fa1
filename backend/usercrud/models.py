"""SQLModel data models.

Table names carry the configured `DB_PREFIX`, so `DB_PREFIX=t_` maps
`User` to the `t_user` table.
"""

from typing import Optional
from sqlmodel import SQLModel, Field

from .config import settings


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `id`: uuid string primary key
    - `username` / `email`: login names, at least one is set
    - `password`: hashed password string (never store plaintext)
    """
    __tablename__ = f"{settings.DB_PREFIX}user"

    id: str = Field(primary_key=True)
    username: str = Field(default="", index=True)
    email: str = Field(default="", index=True)
    password: str


class Example(SQLModel, table=True):
    """Sample resource served under /campaign; `year` is unique per example."""
    __tablename__ = f"{settings.DB_PREFIX}example"

    id: str = Field(primary_key=True)
    name: str
    year: int = Field(index=True)
    description: Optional[str] = None
