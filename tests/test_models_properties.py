"""Property-based tests for field descriptors, the field registry and update operations.

Feature: document-change-tracking
"""

import pytest
import structlog
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from doctrack.models import (
    Attribute,
    Document,
    FieldDescriptor,
    FieldRegistry,
    OperationKind,
    UpdateOperation,
    is_resizable_type,
)

log = structlog.stdlib.get_logger()

field_names = st.from_regex(r"[a-z][a-z0-9_]{0,15}", fullmatch=True)


class Vehicle(Document):
    make = Attribute(str)
    wheels = Attribute(int, default=4)


class Truck(Vehicle):
    wheels = Attribute(int, default=6, storage_key="w")
    payload = Attribute(float)


@given(names=st.lists(field_names, min_size=1, max_size=10, unique=True))
@settings(max_examples=100)
def test_property_16_registry_lookup(names: list[str]):
    """Property 16: Every registered descriptor is found by name and storage key.

    **Feature: document-change-tracking, Property 16: Registry lookup**
    """
    log.info("test_property_16_registry_lookup", count=len(names))

    registry = FieldRegistry()
    for name in names:
        registry.register(FieldDescriptor(name=name, storage_key=f"k_{name}"))

    assert len(registry) == len(names)
    assert registry.names() == names
    for name in names:
        assert name in registry
        assert registry.lookup(name).name == name
        assert registry.by_storage_key(f"k_{name}").name == name
    assert registry.lookup("not a field") is None


def test_registry_rejects_duplicates_unless_overriding():
    """Test duplicate registration."""
    registry = FieldRegistry()
    registry.register(FieldDescriptor(name="make"))

    with pytest.raises(ValueError, match="Duplicate"):
        registry.register(FieldDescriptor(name="make"))

    registry.register(FieldDescriptor(name="make", default="acme"), override=True)
    assert registry.lookup("make").default == "acme"


def test_descriptor_requires_name_and_is_frozen():
    """Test descriptor validation and immutability."""
    with pytest.raises(ValidationError):
        FieldDescriptor(name="")

    descriptor = FieldDescriptor(name="make")
    with pytest.raises(ValidationError):
        descriptor.name = "model"


def test_descriptor_key_and_method_name():
    """Test storage key and accessor name fallbacks."""
    plain = FieldDescriptor(name="make")
    aliased = FieldDescriptor(name="make", storage_key="mk", alias="brand")

    assert (plain.key, plain.method_name) == ("make", "make")
    assert (aliased.key, aliased.method_name) == ("mk", "brand")


def test_resizable_types():
    """Test which declared types are diffed element-wise."""
    assert is_resizable_type(list)
    assert is_resizable_type(set)
    assert is_resizable_type(tuple)
    assert not is_resizable_type(str)
    assert not is_resizable_type(None)
    assert Attribute(list).resizable is True
    assert Attribute(list, resizable=False).resizable is False


def test_subclass_inherits_and_overrides_fields():
    """Test that a subclass extends its parent's registry."""
    assert Vehicle.fields.names() == ["make", "wheels"]
    assert Truck.fields.names() == ["make", "wheels", "payload"]
    assert Truck.fields.lookup("wheels").key == "w"
    assert Vehicle.fields.lookup("wheels").key == "wheels"
    assert Truck().wheels == 6
    assert Vehicle().wheels == 4
    assert callable(Truck.payload_changed)
    assert not hasattr(Vehicle, "payload_changed")


def test_update_operation_constructors():
    """Test the operation factory methods."""
    assert UpdateOperation.set("x") == UpdateOperation(kind=OperationKind.SET, value="x")
    assert UpdateOperation.unset().value is None
    assert UpdateOperation.push((1, 2)).value == [1, 2]
    assert UpdateOperation.add_to_set([1]).kind is OperationKind.ADD_TO_SET
    assert UpdateOperation.pull([1]).kind is OperationKind.PULL
    assert UpdateOperation.set(1).model_dump() == {"kind": "set", "value": 1}
