"""Shared base for store schemas."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Schema readable straight from ORM rows, with whitespace-stripped strings."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )

    @classmethod
    def from_orm(cls, obj: Any) -> Self:
        """Build the schema from a SQLAlchemy model instance."""
        return cls.model_validate(obj)

    def to_json_dict(self) -> dict[str, Any]:
        """Plain dict with datetimes as ISO strings, for ``--format json`` output."""
        return self.model_dump(mode="json")
