"""Document base classes with attribute change tracking."""

import copy
import json
import re
from collections.abc import Mapping
from typing import Any, Callable, ClassVar, Optional

import structlog

from doctrack.errors import TypeMismatchError
from doctrack.models.field import FieldDescriptor, FieldRegistry, is_resizable_type
from doctrack.models.operations import UpdateOperation
from doctrack.tracking.accessors import install_dirty_methods
from doctrack.tracking.change_set import UNSPECIFIED, Change, ChangeSet
from doctrack.tracking.setters import build_update_ops

log = structlog.stdlib.get_logger()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Attribute:
    """Data descriptor declaring a tracked document attribute.

    Example:
        >>> class Person(Document):
        ...     name = Attribute(str)
        ...     tags = Attribute(list, default=[])
        >>> person = Person(name="bob")
        >>> person.changes()
        {'name': (None, 'bob')}
    """

    def __init__(
        self,
        type_: Any = None,
        *,
        default: Any = None,
        default_fn: Optional[Callable[["Document"], Any]] = None,
        storage_key: Optional[str] = None,
        alias: Optional[str] = None,
        resizable: Optional[bool] = None,
        coerce: Optional[Callable[[Any], Any]] = None,
    ):
        self.type_ = type_
        self.default = default
        self.default_fn = default_fn
        self.storage_key = storage_key
        self.alias = alias
        self.resizable = is_resizable_type(type_) if resizable is None else resizable
        self.coerce = coerce
        self.name = ""
        self.descriptor: FieldDescriptor | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.descriptor = FieldDescriptor(
            name=name,
            type_=self.type_,
            resizable=self.resizable,
            default=self.default,
            default_fn=self.default_fn,
            storage_key=self.storage_key or "",
            alias=self.alias or "",
            coerce=self.coerce,
        )

    def __get__(self, instance: Optional["Document"], owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.read_attribute(self.name)

    def __set__(self, instance: "Document", value: Any) -> None:
        instance.write_attribute(self.name, value)


def _alias_property(name: str) -> property:
    def getter(self: "Document") -> Any:
        return self.read_attribute(name)

    def setter(self: "Document", value: Any) -> None:
        self.write_attribute(name, value)

    return property(getter, setter)


def _document_api() -> frozenset[str]:
    """Names defined by the document base class, which attributes must not shadow."""
    return frozenset(name for base in Document.__mro__ for name in vars(base))


class Document:
    """Base class for documents persisted as a mapping of storage keys.

    Subclasses declare attributes with :class:`Attribute`. Every write goes
    through :meth:`write_attribute`, which records the old value in the
    document's :class:`ChangeSet` the first time it changes in a cycle.
    """

    type_key: ClassVar[str] = "type"
    document_type: ClassVar[Optional[str]] = None
    fields: ClassVar[FieldRegistry] = FieldRegistry()
    _kinds: ClassVar[dict[str, type["Document"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        registry = FieldRegistry()
        for base in reversed(cls.__mro__[1:]):
            inherited = vars(base).get("fields")
            if isinstance(inherited, FieldRegistry):
                registry.extend(inherited)

        reserved = _document_api()
        for attr_name, value in list(vars(cls).items()):
            if not isinstance(value, Attribute) or value.descriptor is None:
                continue
            meth = value.descriptor.method_name
            for declared in {attr_name, meth}:
                if declared in reserved:
                    raise ValueError(
                        f"Attribute {declared!r} of {cls.__name__} would replace a document method"
                    )
            registry.register(value.descriptor, override=True)
            if meth != attr_name:
                setattr(cls, meth, _alias_property(attr_name))
            install_dirty_methods(cls, attr_name, meth, reserved=reserved)

        cls.fields = registry
        Document._kinds[cls.design_document()] = cls

    def __init__(
        self,
        attributes: "Mapping[str, Any] | Document | None" = None,
        *,
        id: Optional[str] = None,
        **kwargs: Any,
    ):
        """
        Build a new, unsaved document.

        Declared attributes start at their static default without being
        tracked. Supplied values are written through the tracked writer.

        Args:
            attributes: Initial values, or another document to copy from
            id: Optional document id
            **kwargs: Initial values by attribute name or alias
        """
        self._init_state(id)

        supplied: dict[str, Any] = {}
        if isinstance(attributes, Document):
            supplied.update(attributes.to_dict())
        elif attributes:
            supplied.update(attributes)
        supplied.update(kwargs)

        for name, value in supplied.items():
            self.write_attribute(name, value)

        resolved = {self._resolve_name(name) for name in supplied}
        for field in self.fields.all():
            if field.default_fn is not None and field.name not in resolved:
                self._attributes[field.name] = field.eval_default(self)

    def _init_state(self, doc_id: Optional[str]) -> None:
        self.id = doc_id
        self._new_record = True
        self._destroyed = False
        self._atomic_unsets: set[str] = set()
        self._attributes: dict[str, Any] = {
            field.name: None if field.default_fn is not None else field.eval_default(self)
            for field in self.fields.all()
        }
        self._change_set = ChangeSet(self._attributes)

    # Kind registry and hydration

    @classmethod
    def design_document(cls) -> str:
        """Type tag stored with every document of this kind."""
        if cls.document_type:
            return cls.document_type
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()

    @classmethod
    def kind_for(cls, tag: str) -> Optional[type["Document"]]:
        """Return the document class registered for a type tag."""
        return Document._kinds.get(tag)

    @classmethod
    def from_storage(cls, doc_id: Optional[str], data: Mapping[str, Any]) -> "Document":
        """Hydrate a clean document from its persisted form.

        Args:
            doc_id: Document id
            data: Persisted mapping keyed by storage key

        Returns:
            Document with no pending or committed changes

        Raises:
            TypeMismatchError: If the data is tagged as another kind
        """
        tag = data.get(cls.type_key)
        if tag is not None and tag != cls.design_document():
            raise TypeMismatchError(cls.design_document(), tag, doc_id)

        document = cls.__new__(cls)
        document._init_state(doc_id)
        document.load_attributes(data)
        return document

    def load_attributes(self, data: Mapping[str, Any]) -> None:
        """Replace all attributes from persisted data and start a fresh change set."""
        attributes: dict[str, Any] = {}
        for key, raw in data.items():
            if key == self.type_key:
                continue
            field = self.fields.by_storage_key(key) or self.fields.lookup(key)
            if field is None:
                attributes[key] = raw
            else:
                attributes[field.name] = self._coerce(field, raw)

        for field in self.fields.all():
            if field.name not in attributes:
                attributes[field.name] = None

        self._attributes = attributes
        self._change_set = ChangeSet(self._attributes)
        self._atomic_unsets.clear()
        self._new_record = False

        for field in self.fields.all():
            if field.key not in data and field.name not in data:
                self._attributes[field.name] = field.eval_default(self)

    # Reading and writing

    def _resolve_name(self, name: str) -> str:
        if name in self.fields:
            return name
        for field in self.fields.all():
            if field.alias == name:
                return field.name
        return name

    def _coerce(self, field: FieldDescriptor, value: Any) -> Any:
        if value is None:
            return None
        if field.coerce is not None:
            value = field.coerce(value)
        type_ = field.type_
        if not isinstance(type_, type):
            return value
        if issubclass(type_, Document) and isinstance(value, Mapping):
            return type_.from_storage(None, value)
        if field.resizable and not isinstance(value, type_):
            if isinstance(value, (list, tuple, set, frozenset)):
                return type_(value)
        return value

    def read_attribute(self, name: str) -> Any:
        return self._attributes.get(self._resolve_name(name))

    def write_attribute(self, name: str, value: Any) -> None:
        """Write an attribute, recording its old value when it changes."""
        name = self._resolve_name(name)
        field = self.fields.lookup(name)
        if field is not None:
            value = self._coerce(field, value)

        previous = self._attributes.get(name)
        self._attributes[name] = value
        if previous != value:
            self._change_set.record_write(name, previous)

    def __getitem__(self, name: str) -> Any:
        return self.read_attribute(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.write_attribute(name, value)

    @property
    def attributes(self) -> dict[str, Any]:
        """Live attribute mapping keyed by attribute name."""
        return self._attributes

    @property
    def change_set(self) -> ChangeSet:
        return self._change_set

    @property
    def is_new_record(self) -> bool:
        return self._new_record

    @property
    def is_persisted(self) -> bool:
        return not self._new_record and not self._destroyed

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def mark_persisted(self, doc_id: str) -> None:
        self.id = doc_id
        self._new_record = False

    def mark_destroyed(self) -> None:
        self._destroyed = True

    # Record-level changes

    def changed(self) -> list[str]:
        """Names of attributes with a pending change."""
        return self._change_set.all_changed_names()

    def changed_attributes(self) -> dict[str, Any]:
        """Raw view of pending old values, including reverted entries."""
        return self._change_set.current_diff

    def changes(self) -> dict[str, Change]:
        """Pending ``(old, new)`` pairs keyed by attribute name."""
        return self._change_set.snapshot_all_diffs()

    def previous_changes(self) -> dict[str, Change]:
        """``(old, new)`` pairs committed by the last save."""
        return dict(self._change_set.previous_diff)

    def has_attribute_changes(self) -> bool:
        return any(self.changes().values())

    def is_changed(self) -> bool:
        """Has this document or any direct embedded child changed?"""
        return self.has_attribute_changes() or self.children_changed()

    def embedded_children(self) -> dict[str, "Document"]:
        """Embedded documents held directly by this document's attributes."""
        children = {}
        for field in self.fields.all():
            type_ = field.type_
            if not (isinstance(type_, type) and issubclass(type_, EmbeddedDocument)):
                continue
            value = self._attributes.get(field.name)
            if isinstance(value, Document):
                children[field.name] = value
        return children

    def children_changed(self) -> bool:
        """Have any direct children changed?

        Only the children's own attributes count, not their descendants.
        """
        return any(child.has_attribute_changes() for child in self.embedded_children().values())

    def subtree_changed(self) -> bool:
        """Has this document or any embedded descendant, at any depth, changed?

        This decides what a write must carry. :meth:`is_changed` stays limited
        to direct children.
        """
        if self.has_attribute_changes():
            return True
        return any(child.subtree_changed() for child in self.embedded_children().values())

    @property
    def atomic_unsets(self) -> set[str]:
        """Storage keys marked for removal on the next update."""
        return self._atomic_unsets

    def atomic_attribute_name(self, name: str) -> str:
        field = self.fields.lookup(name)
        return field.key if field is not None else name

    def unset(self, name: str) -> None:
        """Clear an attribute and remove its key from storage on the next update."""
        name = self._resolve_name(name)
        self.write_attribute(name, None)
        self._atomic_unsets.add(self.atomic_attribute_name(name))

    def setters(self) -> dict[str, UpdateOperation]:
        """Atomic update operations for the pending changes."""
        return build_update_ops(self)

    def move_changes(self, force: bool = False) -> dict[str, Change]:
        return self._change_set.commit(force=force)

    def changes_applied(self) -> None:
        """Commit hook, called once after a successful write.

        When anything in this document's subtree was written, the last-save
        snapshots are replaced even if only embedded children changed.
        """
        self.move_changes(force=self.subtree_changed() or bool(self._atomic_unsets))
        for child in self.embedded_children().values():
            child.changes_applied()
        self._atomic_unsets.clear()

    def reset_object(self) -> None:
        """Drop every pending and committed change."""
        self._change_set.reset_all()
        self._atomic_unsets.clear()

    clear_changes_information = reset_object

    # Per-attribute changes

    def attribute_change(self, name: str) -> Change | None:
        return self._change_set.diff_for(self._resolve_name(name))

    def attribute_changed(self, name: str, from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED) -> bool:
        return self._change_set.is_changed(self._resolve_name(name), from_=from_, to=to)

    def will_save_change_to_attribute(
        self, name: str, from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED
    ) -> bool:
        """Will the next save change this attribute?"""
        return self.attribute_changed(name, from_=from_, to=to)

    def attribute_changed_from_default(self, name: str) -> bool:
        name = self._resolve_name(name)
        field = self.fields.lookup(name)
        if field is None:
            return False
        return self._attributes.get(name) != field.eval_default(self)

    def attribute_was(self, name: str) -> Any:
        return self._change_set.value_before_pending_change(self._resolve_name(name))

    def attribute_previously_was(self, name: str) -> Any:
        return self._change_set.value_before_committed_change(self._resolve_name(name))

    def attribute_before_last_save(self, name: str) -> Any:
        """Value right before the last save, whether or not that save changed it."""
        return self._change_set.value_before_last_save(self._resolve_name(name))

    def attribute_saved_change(self, name: str) -> Change | None:
        return self._change_set.change_during_last_save(self._resolve_name(name))

    def saved_change_to_attribute(
        self, name: str, from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED
    ) -> bool:
        """Did the last save change this attribute?"""
        return self._change_set.changed_during_last_save(
            self._resolve_name(name), from_=from_, to=to
        )

    def attribute_will_change(self, name: str) -> None:
        """Flag an attribute before mutating its value in place."""
        self._change_set.mark_pending(self._resolve_name(name))

    def reset_attribute(self, name: str) -> Any:
        return self._change_set.revert(self._resolve_name(name))

    def reset_attribute_to_default(self, name: str) -> None:
        name = self._resolve_name(name)
        field = self.fields.lookup(name)
        self.write_attribute(name, field.eval_default(self) if field is not None else None)

    def attribute_previously_changed(self, name: str) -> bool:
        return self._resolve_name(name) in self._change_set.previous_diff

    def attribute_previous_change(self, name: str) -> Change | None:
        return self._change_set.previous_diff.get(self._resolve_name(name))

    # Serialization

    def serialize_value(self, value: Any) -> Any:
        """Convert a value into its persisted form."""
        if isinstance(value, Document):
            return value.to_storage()
        if isinstance(value, (set, frozenset, tuple, list)):
            return [self.serialize_value(item) for item in value]
        if isinstance(value, Mapping):
            return {key: self.serialize_value(item) for key, item in value.items()}
        return value

    def serialize_attribute(self, name: str, value: Any) -> Any:
        return self.serialize_value(value)

    def to_storage(self) -> dict[str, Any]:
        """Persisted form keyed by storage key, tagged with the document type."""
        data: dict[str, Any] = {self.type_key: self.design_document()}
        for name, value in self._attributes.items():
            data[self.atomic_attribute_name(name)] = self.serialize_attribute(name, value)
        return data

    def to_dict(self, only: Optional[list[str]] = None) -> dict[str, Any]:
        """Attribute values keyed by attribute name."""
        names = only if only is not None else list(self._attributes)
        return {name: copy.deepcopy(self._attributes.get(name)) for name in names}

    def to_json(self, only: Optional[list[str]] = None) -> str:
        data: dict[str, Any] = {}
        if only is None:
            data["id"] = self.id
        data.update(
            {name: self.serialize_value(value) for name, value in self.to_dict(only).items()}
        )
        return json.dumps(data, default=str)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self) or self.id is None:
            return False
        return self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash((type(self), self.id))

    def __repr__(self) -> str:
        parts = [f"id={self.id!r}"]
        parts.extend(f"{name}={value!r}" for name, value in self._attributes.items())
        return f"{type(self).__name__}({', '.join(parts)})"


class EmbeddedDocument(Document):
    """Document stored inside an attribute of another document.

    Embedded documents have no id and compare by value.
    """

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return False
        return self._attributes == other._attributes  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        parts = [f"{name}={value!r}" for name, value in self._attributes.items()]
        return f"{type(self).__name__}({', '.join(parts)})"
