"""Incremental diff strategies for collection-typed attributes."""

from collections import Counter
from typing import TYPE_CHECKING, Any, Callable

from doctrack.models.operations import UpdateOperation

if TYPE_CHECKING:
    from doctrack.models.document import Document

AtomicChanges = Callable[["Document", str, str, dict[str, UpdateOperation], Any, Any], None]


def _is_pure_removal(old: list[Any], new: list[Any]) -> list[Any] | None:
    """Return the removed values if ``new`` is ``old`` minus every occurrence of them."""
    removed = [value for value in old if value not in new]
    if not removed:
        return None
    if [value for value in old if value not in removed] != new:
        return None
    unique: list[Any] = []
    for value in removed:
        if value not in unique:
            unique.append(value)
    return unique


def add_list_changes(
    document: "Document",
    name: str,
    key: str,
    mods: dict[str, UpdateOperation],
    new: Any,
    old: Any,
) -> None:
    """Emit push/pull for ordered collections, full replace otherwise.

    Args:
        document: Owning document (used to serialize the replacement value)
        name: Attribute name
        key: Storage key the operation is written under
        mods: Output mapping of storage key to operation
        new: Current value
        old: Value at the start of the change cycle
    """
    new_list = list(new) if new is not None else None
    old_list = list(old) if old is not None else None

    if new_list is None:
        mods[key] = UpdateOperation.set(None)
        return
    if not old_list:
        mods[key] = UpdateOperation.set(document.serialize_attribute(name, new))
        return
    if new_list == old_list:
        return

    if len(new_list) > len(old_list) and new_list[: len(old_list)] == old_list:
        appended = new_list[len(old_list) :]
        mods[key] = UpdateOperation.push(document.serialize_value(appended))
        return

    removed = _is_pure_removal(old_list, new_list)
    if removed is not None:
        mods[key] = UpdateOperation.pull(document.serialize_value(removed))
        return

    mods[key] = UpdateOperation.set(document.serialize_attribute(name, new))


def add_set_changes(
    document: "Document",
    name: str,
    key: str,
    mods: dict[str, UpdateOperation],
    new: Any,
    old: Any,
) -> None:
    """Emit add_to_set/pull for unordered collections, full replace when both apply."""
    if new is None:
        mods[key] = UpdateOperation.set(None)
        return
    if not old:
        mods[key] = UpdateOperation.set(document.serialize_attribute(name, new))
        return

    old_counts = Counter(old)
    new_counts = Counter(new)
    added = [value for value in new_counts if value not in old_counts]
    removed = [value for value in old_counts if value not in new_counts]

    if added and removed:
        mods[key] = UpdateOperation.set(document.serialize_attribute(name, new))
    elif added:
        mods[key] = UpdateOperation.add_to_set(document.serialize_value(added))
    elif removed:
        mods[key] = UpdateOperation.pull(document.serialize_value(removed))


RESIZABLE_STRATEGIES: dict[type, AtomicChanges] = {
    list: add_list_changes,
    tuple: add_list_changes,
    set: add_set_changes,
    frozenset: add_set_changes,
}


def strategy_for(type_: type | None) -> AtomicChanges:
    """Return the incremental diff function for a declared collection type."""
    if type_ is not None:
        for collection_type, strategy in RESIZABLE_STRATEGIES.items():
            if isinstance(type_, type) and issubclass(type_, collection_type):
                return strategy
    return add_list_changes
