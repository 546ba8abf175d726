"""Pydantic schemas for Repository model."""

from datetime import datetime

from pydantic import Field

from .base import SchemaBase


class RepositoryCreate(SchemaBase):
    """Schema for registering a repository by hand."""

    workspace: str = Field(min_length=1, max_length=100, description="Workspace slug (e.g., 'acme')")
    slug: str = Field(min_length=1, max_length=200, description="Repository slug (e.g., 'widgets')")

    @classmethod
    def from_full_name(cls, full_name: str) -> "RepositoryCreate":
        """
        Factory method to create from a ``workspace/slug`` string.

        Raises:
            ValueError: If the string is not of the form ``workspace/slug``
        """
        workspace, sep, slug = full_name.strip().partition("/")
        if not sep or not workspace or not slug or "/" in slug:
            raise ValueError(f"Expected 'workspace/slug', got {full_name!r}")
        return cls(workspace=workspace, slug=slug)

    @property
    def full_name(self) -> str:
        return f"{self.workspace}/{self.slug}"


class RepositoryRead(SchemaBase):
    """Schema for reading repository data."""

    id: int
    uuid: str
    workspace: str
    slug: str
    name: str
    created_on: datetime | None
    exclude_from_sync: bool
    last_delta_sync_at: datetime | None
