"""Pydantic models for atomic field update operations."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class OperationKind(str, Enum):
    """Kinds of atomic update a storage client must understand."""

    SET = "set"
    UNSET = "unset"
    PUSH = "push"
    ADD_TO_SET = "add_to_set"
    PULL = "pull"


class UpdateOperation(BaseModel):
    """A single atomic update applied to one storage key."""

    kind: OperationKind = Field(default=..., description="Operation to apply")
    value: Any = Field(default=None, description="Operand (new value or elements)")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "kind": "push",
                "value": [3],
            }
        },
    }

    @classmethod
    def set(cls, value: Any) -> "UpdateOperation":
        """Replace the whole value."""
        return cls(kind=OperationKind.SET, value=value)

    @classmethod
    def unset(cls) -> "UpdateOperation":
        """Remove the key from the stored document."""
        return cls(kind=OperationKind.UNSET)

    @classmethod
    def push(cls, values: list[Any]) -> "UpdateOperation":
        """Append elements to an ordered collection."""
        return cls(kind=OperationKind.PUSH, value=list(values))

    @classmethod
    def add_to_set(cls, values: list[Any]) -> "UpdateOperation":
        """Add elements to an unordered collection."""
        return cls(kind=OperationKind.ADD_TO_SET, value=list(values))

    @classmethod
    def pull(cls, values: list[Any]) -> "UpdateOperation":
        """Remove every occurrence of the given elements."""
        return cls(kind=OperationKind.PULL, value=list(values))
