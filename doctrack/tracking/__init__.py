"""Change tracking: change sets, update translation and accessor generation."""

from doctrack.tracking.change_set import UNSPECIFIED, Change, ChangeSet, Unspecified
from doctrack.tracking.resizable import add_list_changes, add_set_changes, strategy_for
from doctrack.tracking.setters import build_update_ops
from doctrack.tracking.accessors import dirty_method_names, install_dirty_methods

__all__ = [
    "UNSPECIFIED",
    "Change",
    "ChangeSet",
    "Unspecified",
    "add_list_changes",
    "add_set_changes",
    "build_update_ops",
    "dirty_method_names",
    "install_dirty_methods",
    "strategy_for",
]
