"""Timestamp stamping applied by the repository before writes."""

from datetime import datetime, timezone

from doctrack.models.document import Document


def _declares(document: Document, name: str) -> bool:
    return name in document.fields


def set_created_at(document: Document) -> list[str]:
    """Stamp ``created_at`` on create, unless it is already set.

    ``updated_at`` is stamped with the same time unless the caller already
    changed it.

    Returns:
        Names of the attributes that were stamped
    """
    if not _declares(document, "created_at") or document["created_at"] is not None:
        return []

    now = datetime.now(timezone.utc)
    stamped = []
    if _declares(document, "updated_at") and not document.attribute_changed("updated_at"):
        document["updated_at"] = now
        stamped.append("updated_at")
    document["created_at"] = now
    stamped.append("created_at")
    return stamped


def set_updated_at(document: Document) -> list[str]:
    """Stamp ``updated_at`` when an update will write anything, nested changes included."""
    if not _declares(document, "updated_at"):
        return []
    if not document.subtree_changed() or document.attribute_changed("updated_at"):
        return []
    document["updated_at"] = datetime.now(timezone.utc)
    return ["updated_at"]


def unstamp(document: Document, names: list[str]) -> None:
    """Undo stamping after a failed write."""
    for name in names:
        document.reset_attribute(name)
