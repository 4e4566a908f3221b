"""Per-attribute dirty-tracking method builder.

Each declared attribute gets a family of methods (``name_changed``,
``name_was``, ``reset_name`` ...) that close over the attribute name and
forward to the generic per-name methods on the document.

Two names differ only in word order: ``name_saved_change()`` returns the
``(old, new)`` pair from the last save, while ``saved_change_to_name()`` is
the predicate and accepts ``from_`` / ``to`` bounds.
"""

from typing import TYPE_CHECKING, Any, Callable, Collection

from doctrack.tracking.change_set import UNSPECIFIED

if TYPE_CHECKING:
    from doctrack.models.document import Document


def _change(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_change(name)

    return method


def _changed(name: str) -> Callable[..., Any]:
    def method(self: "Document", from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED) -> bool:
        return self.attribute_changed(name, from_=from_, to=to)

    return method


def _will_save_change(name: str) -> Callable[..., Any]:
    def method(self: "Document", from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED) -> bool:
        return self.will_save_change_to_attribute(name, from_=from_, to=to)

    return method


def _changed_from_default(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> bool:
        return self.attribute_changed_from_default(name)

    return method


def _was(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_was(name)

    return method


def _previously_was(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_previously_was(name)

    return method


def _before_last_save(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_before_last_save(name)

    return method


def _saved_change(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_saved_change(name)

    return method


def _saved_change_check(name: str) -> Callable[..., Any]:
    def method(self: "Document", from_: Any = UNSPECIFIED, to: Any = UNSPECIFIED) -> bool:
        return self.saved_change_to_attribute(name, from_=from_, to=to)

    return method


def _will_change(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> None:
        self.attribute_will_change(name)

    return method


def _reset(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.reset_attribute(name)

    return method


def _reset_to_default(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> None:
        self.reset_attribute_to_default(name)

    return method


def _previously_changed(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> bool:
        return self.attribute_previously_changed(name)

    return method


def _previous_change(name: str) -> Callable[..., Any]:
    def method(self: "Document") -> Any:
        return self.attribute_previous_change(name)

    return method


# Method name template -> closure factory
DIRTY_METHODS: dict[str, Callable[[str], Callable[..., Any]]] = {
    "{}_change": _change,
    "{}_changed": _changed,
    "will_save_change_to_{}": _will_save_change,
    "{}_changed_from_default": _changed_from_default,
    "{}_was": _was,
    "{}_previously_was": _previously_was,
    "{}_before_last_save": _before_last_save,
    "{}_saved_change": _saved_change,
    "saved_change_to_{}": _saved_change_check,
    "{}_will_change": _will_change,
    "reset_{}": _reset,
    "reset_{}_to_default": _reset_to_default,
    "{}_previously_changed": _previously_changed,
    "{}_previous_change": _previous_change,
}


def dirty_method_names(meth: str) -> list[str]:
    """Names of the methods generated for accessor base name ``meth``."""
    return [template.format(meth) for template in DIRTY_METHODS]


def install_dirty_methods(
    cls: type, name: str, meth: str, reserved: Collection[str] = ()
) -> list[str]:
    """Attach the dirty-tracking family for one attribute to ``cls``.

    Methods the class body defines itself are left in place.

    Args:
        cls: Document class being created
        name: Attribute name the methods operate on
        meth: Base name used to build the method names
        reserved: Names of base-class methods the family must not replace

    Returns:
        Names of the methods that were installed

    Raises:
        ValueError: If a generated name is reserved
    """
    clashes = [method_name for method_name in dirty_method_names(meth) if method_name in reserved]
    if clashes:
        raise ValueError(
            f"Attribute {meth!r} of {cls.__name__} would replace document methods: "
            f"{', '.join(clashes)}"
        )

    installed = []
    for template, factory in DIRTY_METHODS.items():
        method_name = template.format(meth)
        if method_name in vars(cls):
            continue
        method = factory(name)
        method.__name__ = method_name
        method.__qualname__ = f"{cls.__name__}.{method_name}"
        setattr(cls, method_name, method)
        installed.append(method_name)
    return installed
