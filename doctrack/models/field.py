"""Field descriptors and the per-kind field registry."""

import copy
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import BaseModel, Field, field_validator

from doctrack.models.operations import UpdateOperation
from doctrack.tracking.resizable import RESIZABLE_STRATEGIES, strategy_for

if TYPE_CHECKING:
    from doctrack.models.document import Document


def is_resizable_type(type_: Any) -> bool:
    """Collection types are diffed element-wise instead of replaced."""
    return isinstance(type_, type) and issubclass(type_, tuple(RESIZABLE_STRATEGIES))


class FieldDescriptor(BaseModel):
    """Immutable metadata for one declared attribute."""

    name: str = Field(default=..., description="Attribute name")
    type_: Any = Field(default=None, description="Declared Python type, if any")
    resizable: bool = Field(default=False, description="Diff element-wise on update")
    default: Any = Field(default=None, description="Static default value")
    default_fn: Optional[Callable[[Any], Any]] = Field(
        default=None, description="Default evaluated against the owning document"
    )
    storage_key: str = Field(default="", description="Key in the persisted document")
    alias: str = Field(default="", description="External accessor base name")
    coerce: Optional[Callable[[Any], Any]] = Field(
        default=None, description="Read function applied to written values"
    )

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("field must be non-empty")
        return v

    @property
    def key(self) -> str:
        return self.storage_key or self.name

    @property
    def method_name(self) -> str:
        return self.alias or self.name

    def eval_default(self, document: "Document") -> Any:
        """Evaluate the default for ``document``; static defaults are copied."""
        if self.default_fn is not None:
            return self.default_fn(document)
        return copy.deepcopy(self.default)

    def add_atomic_changes(
        self,
        document: "Document",
        name: str,
        key: str,
        mods: dict[str, UpdateOperation],
        new: Any,
        old: Any,
    ) -> None:
        """Write incremental update operations for a resizable attribute."""
        strategy_for(self.type_)(document, name, key, mods, new, old)


class FieldRegistry(BaseModel):
    """Registry of field descriptors keyed by attribute name."""

    descriptors: dict[str, FieldDescriptor] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    def register(self, descriptor: FieldDescriptor, override: bool = False) -> None:
        if descriptor.name in self.descriptors and not override:
            raise ValueError(f"Duplicate field name: {descriptor.name}")
        self.descriptors[descriptor.name] = descriptor

    def lookup(self, name: str) -> FieldDescriptor | None:
        """Return the descriptor for ``name``, or None for undeclared attributes."""
        return self.descriptors.get(name)

    def extend(self, other: "FieldRegistry") -> None:
        """Copy declarations from a parent kind, overriding duplicates."""
        self.descriptors.update(other.descriptors)

    def names(self) -> list[str]:
        return list(self.descriptors.keys())

    def by_storage_key(self, key: str) -> FieldDescriptor | None:
        for descriptor in self.descriptors.values():
            if descriptor.key == key:
                return descriptor
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.descriptors

    def all(self) -> list[FieldDescriptor]:
        return list(self.descriptors.values())

    def __len__(self) -> int:
        return len(self.descriptors)
