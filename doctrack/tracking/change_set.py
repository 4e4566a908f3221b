"""Per-document change set: pending and committed attribute diffs."""

import copy
from enum import Enum
from typing import Any

import structlog

log = structlog.stdlib.get_logger()

Change = tuple[Any, Any]


class Unspecified(Enum):
    """Marker for an optional ``from_`` / ``to`` bound that was not supplied."""

    UNSPECIFIED = "unspecified"

    def __repr__(self) -> str:
        return "UNSPECIFIED"


UNSPECIFIED = Unspecified.UNSPECIFIED


def _matches(expected: Any, actual: Any) -> bool:
    """Check an optional comparison bound against an actual value."""
    return expected is UNSPECIFIED or expected == actual


class ChangeSet:
    """Tracks attribute changes for one document across three time frames.

    ``current_diff`` maps an attribute name to the value it held when it was
    first modified in the current cycle; the new value is always read from the
    live attribute mapping. ``previous_diff`` and ``previous_attributes`` are
    snapshots taken by :meth:`commit`, and each keeps one older generation.
    """

    def __init__(self, attributes: dict[str, Any]):
        """
        Initialize an empty change set.

        Args:
            attributes: The live attribute mapping of the owning document.
                It is read, and written only by :meth:`revert`.
        """
        self._attributes = attributes
        self.current_diff: dict[str, Any] = {}
        self.previous_diff: dict[str, Change] = {}
        self.previous_attributes: dict[str, Any] = {}
        self.changes_before_last_save: dict[str, Change] = {}
        self.attributes_before_last_save: dict[str, Any] = {}

    # Pending changes

    def mark_pending(self, attr: str) -> None:
        """Record the live value of ``attr`` as its old value, once per cycle."""
        if attr in self.current_diff:
            return
        self.current_diff[attr] = copy.deepcopy(self._attributes.get(attr))

    def record_write(self, attr: str, previous: Any) -> None:
        """Record ``previous`` as the old value of a just-written attribute.

        The first recorded value in a cycle wins, so writing an attribute back
        to its original value leaves it without a diff.
        """
        if attr in self.current_diff:
            return
        self.current_diff[attr] = copy.deepcopy(previous)

    def is_changed(self, attr: str, from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED) -> bool:
        """Check whether ``attr`` differs from its value at the start of the cycle.

        Args:
            attr: Attribute name
            from_: Optional expected old value
            to: Optional expected new value

        Returns:
            False when there is no pending entry, when the attribute reverted
            to its old value, or when a given bound does not match.
        """
        if attr not in self.current_diff:
            return False
        old = self.current_diff[attr]
        new = self._attributes.get(attr)
        if old == new:
            return False
        if not _matches(from_, old):
            return False
        if not _matches(to, new):
            return False
        return True

    def diff_for(self, attr: str) -> Change | None:
        """Return ``(old, new)`` for a changed attribute, else None."""
        if not self.is_changed(attr):
            return None
        return (self.current_diff[attr], self._attributes.get(attr))

    def all_changed_names(self) -> list[str]:
        """Names of pending entries that still differ from their old value."""
        return [attr for attr in self.current_diff if self.is_changed(attr)]

    def snapshot_all_diffs(self) -> dict[str, Change]:
        """Map every changed attribute to its ``(old, new)`` pair."""
        diffs: dict[str, Change] = {}
        for attr in self.all_changed_names():
            change = self.diff_for(attr)
            if change is not None:
                diffs[attr] = change
        return diffs

    def value_before_pending_change(self, attr: str) -> Any:
        """Old value of a changed attribute, or its live value when unchanged."""
        if self.is_changed(attr):
            return self.current_diff[attr]
        return self._attributes.get(attr)

    def revert(self, attr: str) -> Any:
        """Write the recorded old value back and drop the pending entry.

        No-op for an attribute without a change.
        """
        if not self.is_changed(attr):
            return None
        old = self.current_diff.pop(attr)
        self._attributes[attr] = old
        return old

    # Committed changes

    def commit(self, force: bool = False) -> dict[str, Change]:
        """Promote pending changes into the last-save snapshots.

        Snapshots are captured before ``current_diff`` is cleared. A commit
        with nothing changed leaves the last-save snapshots untouched, unless
        ``force`` is set: the owner was written anyway (for example because
        only an embedded child changed), so the last save changed nothing here.

        Args:
            force: Replace the last-save snapshots even when nothing changed

        Returns:
            The committed ``(old, new)`` pairs
        """
        snapshot = copy.deepcopy(self.snapshot_all_diffs())
        if not snapshot and not force:
            self.current_diff.clear()
            log.debug("change_set_commit_skipped", reason="no_changes")
            return {}

        before_save = copy.deepcopy(self._attributes)
        for attr, (old, _new) in snapshot.items():
            before_save[attr] = copy.deepcopy(old)

        self.changes_before_last_save = self.previous_diff
        self.previous_diff = snapshot
        self.attributes_before_last_save = self.previous_attributes
        self.previous_attributes = before_save
        self.current_diff.clear()

        log.debug("change_set_committed", attributes=sorted(snapshot))
        return snapshot

    def reset_all(self) -> None:
        """Forget every pending and committed change."""
        self.current_diff.clear()
        self.previous_diff = {}
        self.previous_attributes = {}
        self.changes_before_last_save = {}
        self.attributes_before_last_save = {}
        log.debug("change_set_reset")

    def value_before_last_save(self, attr: str) -> Any:
        """Value of ``attr`` right before the most recent commit."""
        return self.previous_attributes.get(attr)

    def change_during_last_save(self, attr: str) -> Change | None:
        """``(old, new)`` pair committed for ``attr`` by the last save."""
        return self.previous_diff.get(attr)

    def changed_during_last_save(
        self, attr: str, from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED
    ) -> bool:
        """Check whether ``attr`` changed during the last save."""
        change = self.change_during_last_save(attr)
        if change is None:
            return False
        old, new = change
        return _matches(from_, old) and _matches(to, new)

    def value_before_committed_change(self, attr: str) -> Any:
        """Old value from the last save, falling back to the pre-save snapshot."""
        if attr in self.previous_diff:
            return self.previous_diff[attr][0]
        return self.previous_attributes.get(attr)
