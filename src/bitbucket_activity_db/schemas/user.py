"""Pydantic schemas for User model."""

from pydantic import Field

from .base import SchemaBase


class UserUpsert(SchemaBase):
    """Fields written when a workspace member is inserted or refreshed."""

    uuid: str = Field(min_length=1, max_length=64)
    display_name: str | None = Field(default=None, max_length=200)
    nickname: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)
