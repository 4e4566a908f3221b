"""Translate a document's pending changes into atomic update operations."""

from typing import TYPE_CHECKING

import structlog

from doctrack.models.operations import UpdateOperation

if TYPE_CHECKING:
    from doctrack.models.document import Document

log = structlog.stdlib.get_logger()


def build_update_ops(document: "Document") -> dict[str, UpdateOperation]:
    """Build the partial-update payload for a document.

    Every changed attribute is written under its storage key. Resizable
    attributes delegate to their field's incremental diff, which may emit
    push/pull operations or nothing at all. Keys marked for removal emit a
    single unset and are never also replaced. A direct embedded child is
    replaced as a whole when anything in its subtree changed and the parent
    has no diff for it, so changes nested at any depth reach storage.

    Args:
        document: Document whose pending changes are translated

    Returns:
        Mapping of storage key to update operation
    """
    mods: dict[str, UpdateOperation] = {}
    unsets = document.atomic_unsets

    for name, (old, new) in document.changes().items():
        field = document.fields.lookup(name)
        key = document.atomic_attribute_name(name)
        if key in unsets:
            continue
        if field is not None and field.resizable:
            field.add_atomic_changes(document, name, key, mods, new, old)
        else:
            mods[key] = UpdateOperation.set(document.serialize_attribute(name, new))

    for name, child in document.embedded_children().items():
        key = document.atomic_attribute_name(name)
        if key in mods or key in unsets:
            continue
        if child.subtree_changed():
            mods[key] = UpdateOperation.set(document.serialize_attribute(name, child))

    for key in unsets:
        mods[key] = UpdateOperation.unset()

    log.debug(
        "update_operations_built",
        document_type=document.design_document(),
        operations=mods,
    )
    return mods
