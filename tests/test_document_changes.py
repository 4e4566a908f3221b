"""Tests for document-level change tracking and the generated accessors."""

import json

import pytest

from doctrack.errors import TypeMismatchError
from doctrack.models.document import Attribute, Document, EmbeddedDocument
from doctrack.tracking.accessors import dirty_method_names


class BaseTest(Document):
    name = Attribute(str)
    job = Attribute(str)


class CompareTest(Document):
    age = Attribute(int)


class DefaultsTest(Document):
    name = Attribute(str, default="anonymous")
    tags = Attribute(list, default=[])
    slug = Attribute(str, default_fn=lambda doc: (doc.name or "").lower())


class AliasTest(Document):
    full_name = Attribute(str, alias="title", storage_key="fn")


class GeoPoint(EmbeddedDocument):
    lat = Attribute(float)


class Address(EmbeddedDocument):
    city = Attribute(str)
    geo = Attribute(GeoPoint)


class Customer(Document):
    name = Attribute(str)
    address = Attribute(Address)


def test_new_document_has_no_changes():
    """Test that a document built without values reports no changes."""
    base = BaseTest()

    assert base.changes() == {}
    assert base.previous_changes() == {}
    assert base.is_changed() is False


def test_dirty_scenario_through_commit():
    """Test writes, commit and last-save queries on one attribute."""
    base = BaseTest()

    base.name = "bob"
    assert base.changes() == {"name": (None, "bob")}
    assert base.changed() == ["name"]
    assert base.is_changed() is True

    base.changes_applied()

    assert base.changes() == {}
    assert base.previous_changes() == {"name": (None, "bob")}
    assert base.attribute_before_last_save("name") is None
    assert base.name_before_last_save() is None
    assert base.saved_change_to_name() is True
    assert base.saved_change_to_name(from_=None, to="bob") is True
    assert base.saved_change_to_name(to="alice") is False
    assert base.name_saved_change() == (None, "bob")
    assert base.name_previously_changed() is True
    assert base.name_previous_change() == (None, "bob")
    assert base.name_previously_was() is None
    assert base.job_previously_changed() is False


def test_item_access_is_tracked():
    """Test that attributes set by key are tracked."""
    base = BaseTest()
    base["name"] = "bob"

    assert base["name"] == "bob"
    assert base.changes() == {"name": (None, "bob")}


def test_initializer_values_are_tracked():
    """Test that values given to the constructor are changes."""
    base = BaseTest({"name": "bob"})

    assert base.changes() == {"name": (None, "bob")}
    assert base.previous_changes() == {}


def test_copying_another_document_is_tracked():
    """Test that building from another document records its values as changes."""
    original = BaseTest(name="joe")
    original.changes_applied()

    copy = BaseTest(original)

    assert copy.changes() == {"name": (None, "joe")}
    assert copy.previous_changes() == {}


def test_generated_methods_exist_for_each_attribute():
    """Test that the full dirty-method family is installed."""
    for method_name in dirty_method_names("name"):
        assert callable(getattr(BaseTest, method_name))
    assert BaseTest.name_changed.__name__ == "name_changed"


def test_changed_with_bounds():
    """Test name_changed and will_save_change_to_name with from_/to."""
    base = BaseTest(name="joe")
    base.changes_applied()
    base.name = "bob"

    assert base.name_changed() is True
    assert base.name_changed(from_="joe") is True
    assert base.name_changed(to="bob") is True
    assert base.name_changed(from_="joe", to="bob") is True
    assert base.name_changed(from_="bob") is False
    assert base.will_save_change_to_name(from_="joe", to="bob") is True
    assert base.will_save_change_to_name(to="joe") is False
    assert base.name_change() == ("joe", "bob")
    assert base.name_was() == "joe"
    assert base.job_was() is None
    assert base.job_change() is None


def test_revert_to_original_suppresses_change():
    """Test that writing back the original value leaves no diff."""
    base = BaseTest(name="joe")
    base.changes_applied()

    base.name = "bob"
    base.name = "joe"

    assert base.name_changed() is False
    assert base.changes() == {}
    assert "name" in base.changed_attributes()


def test_first_old_value_is_kept_across_writes():
    """Test that several writes in a cycle keep the original old value."""
    base = BaseTest(name="joe")
    base.changes_applied()

    base.name = "bob"
    base.name = "alice"

    assert base.name_change() == ("joe", "alice")


def test_reset_attribute_restores_old_value():
    """Test reset_name and its no-op on unchanged attributes."""
    base = BaseTest(name="joe")
    base.changes_applied()
    base.name = "bob"

    base.reset_name()

    assert base.name == "joe"
    assert base.name_changed() is False
    assert "name" not in base.changed_attributes()

    base.reset_job()
    assert base.job is None
    assert base.changes() == {}


def test_will_change_tracks_in_place_mutation():
    """Test that flagging before an in-place mutation records the original."""
    doc = DefaultsTest(tags=["a"])
    doc.changes_applied()

    doc.tags_will_change()
    doc.tags.append("b")

    assert doc.tags_change() == (["a"], ["a", "b"])
    assert doc.tags_was() == ["a"]


def test_in_place_mutation_without_flag_is_not_tracked():
    """Test that mutating a collection in place needs an explicit flag."""
    doc = DefaultsTest(tags=["a"])
    doc.changes_applied()

    doc.tags.append("b")

    assert doc.tags_changed() is False


def test_defaults_are_not_changes():
    """Test that static and computed defaults are applied untracked."""
    doc = DefaultsTest(name="Bob")

    assert doc.tags == []
    assert doc.slug == "bob"
    assert doc.changes() == {"name": ("anonymous", "Bob")}
    assert DefaultsTest().changes() == {}


def test_changed_from_default():
    """Test name_changed_from_default against static and computed defaults."""
    doc = DefaultsTest()

    assert doc.name_changed_from_default() is False
    assert doc.tags_changed_from_default() is False

    doc.name = "Bob"
    assert doc.name_changed_from_default() is True
    assert doc.slug_changed_from_default() is True

    doc.slug = "bob"
    assert doc.slug_changed_from_default() is False


def test_changed_from_default_is_false_for_undeclared_attributes():
    """Test the absent-descriptor case."""
    doc = DefaultsTest()
    doc["extra"] = 1

    assert doc.attribute_changed_from_default("extra") is False


def test_reset_to_default_writes_through_tracked_writer():
    """Test reset_name_to_default and the undeclared fallback to None."""
    doc = DefaultsTest(name="Bob")
    doc.changes_applied()

    doc.reset_name_to_default()

    assert doc.name == "anonymous"
    assert doc.name_change() == ("Bob", "anonymous")

    doc["extra"] = 5
    doc.reset_attribute_to_default("extra")
    assert doc["extra"] is None


def test_static_defaults_are_not_shared():
    """Test that mutable static defaults are copied per document."""
    first = DefaultsTest()
    second = DefaultsTest()

    first.tags.append("x")

    assert second.tags == []


def test_alias_uses_alias_method_names_and_storage_key():
    """Test that an aliased attribute gets alias accessors and storage key."""
    doc = AliasTest(title="Dr")

    assert doc.full_name == "Dr"
    assert doc.title == "Dr"
    assert doc.title_changed() is True
    assert doc.title_change() == (None, "Dr")
    assert doc.changes() == {"full_name": (None, "Dr")}
    assert doc.to_storage()["fn"] == "Dr"
    assert not hasattr(AliasTest, "full_name_changed")


def test_child_change_marks_parent_changed():
    """Test that a direct embedded child's change makes the parent changed."""
    customer = Customer(name="acme", address={"city": "Paris"})
    customer.changes_applied()
    assert customer.is_changed() is False

    customer.address.city = "Lyon"

    assert customer.changes() == {}
    assert customer.children_changed() is True
    assert customer.is_changed() is True


def test_grandchild_change_does_not_mark_root_changed():
    """Test that only direct children are considered."""
    customer = Customer(name="acme", address=Address(city="Paris", geo=GeoPoint(lat=1.0)))
    customer.changes_applied()
    customer.address.geo.changes_applied()

    customer.address.geo.lat = 2.0

    assert customer.address.geo.is_changed() is True
    assert customer.address.has_attribute_changes() is False
    assert customer.address.is_changed() is True
    assert customer.is_changed() is False
    assert customer.subtree_changed() is True


def test_changes_applied_commits_direct_children():
    """Test that the commit hook also commits embedded children."""
    customer = Customer(name="acme", address={"city": "Paris"})
    customer.changes_applied()
    customer.address.city = "Lyon"

    customer.changes_applied()

    assert customer.is_changed() is False
    assert customer.address.previous_changes() == {"city": ("Paris", "Lyon")}


def test_commit_hook_after_child_only_write_clears_parent_snapshot():
    """Test that committing a child-only write leaves the parent with no saved changes."""
    customer = Customer(name="acme", address={"city": "Paris"})
    customer.changes_applied()
    assert customer.saved_change_to_name() is True

    customer.address.city = "Lyon"
    customer.changes_applied()

    assert customer.previous_changes() == {}
    assert customer.saved_change_to_name() is False
    assert customer.name_before_last_save() == "acme"


def test_repeated_commit_hook_keeps_last_save():
    """Test that calling the commit hook again without changes is a no-op."""
    base = BaseTest(name="bob")
    base.changes_applied()

    base.changes_applied()

    assert base.previous_changes() == {"name": (None, "bob")}
    assert base.saved_change_to_name(to="bob") is True


@pytest.mark.parametrize("attr_name", ["object", "attribute", "changes", "setters"])
def test_attribute_names_that_shadow_document_methods_are_rejected(attr_name):
    """Test that declaring such an attribute fails when the class is defined."""
    with pytest.raises(ValueError, match="would replace"):
        type("ShadowingDocument", (Document,), {attr_name: Attribute(str)})

    assert Document.kind_for("shadowing_document") is None
    assert BaseTest.reset_object is Document.reset_object
    assert BaseTest.attribute_changed is Document.attribute_changed


def test_alias_that_shadows_document_method_is_rejected():
    """Test that an alias is checked like an attribute name."""
    with pytest.raises(ValueError, match="would replace"):

        class ShadowingAlias(Document):
            full_name = Attribute(str, alias="changed")


def test_from_storage_is_clean():
    """Test that hydration does not populate pending changes."""
    doc = BaseTest.from_storage("base-1", {"type": "base_test", "name": "joe", "job": None})

    assert doc.id == "base-1"
    assert doc.name == "joe"
    assert doc.changes() == {}
    assert doc.previous_changes() == {}
    assert doc.is_persisted is True


def test_from_storage_rejects_other_kinds():
    """Test that data tagged as another kind raises TypeMismatchError."""
    with pytest.raises(TypeMismatchError) as exc_info:
        CompareTest.from_storage("base-1", {"type": "base_test", "name": "joe"})

    assert exc_info.value.expected == "compare_test"
    assert exc_info.value.actual == "base_test"


def test_from_storage_coerces_embedded_documents():
    """Test that embedded mappings hydrate into embedded documents."""
    customer = Customer.from_storage(
        "c-1", {"type": "customer", "name": "acme", "address": {"city": "Paris"}}
    )

    assert isinstance(customer.address, Address)
    assert customer.address.city == "Paris"
    assert customer.is_changed() is False


def test_reset_object_clears_changes():
    """Test the full reset hook."""
    base = BaseTest(name="joe")
    base.changes_applied()
    base.name = "bob"

    base.clear_changes_information()

    assert base.changes() == {}
    assert base.previous_changes() == {}
    assert base.name == "bob"


def test_serialisation():
    """Test to_dict, to_json and repr."""
    base = BaseTest(name="joe", id="base-1")

    assert base.to_dict() == {"name": "joe", "job": None}
    assert json.loads(base.to_json()) == {"id": "base-1", "name": "joe", "job": None}
    assert json.loads(base.to_json(only=["name"])) == {"name": "joe"}
    assert repr(base) == "BaseTest(id='base-1', name='joe', job=None)"


def test_equality_is_by_kind_and_id():
    """Test document comparison."""
    first = BaseTest.from_storage("base-1", {"name": "joe"})
    same = BaseTest.from_storage("base-1", {"name": "other"})
    other = BaseTest.from_storage("base-2", {"name": "joe"})

    assert first == first
    assert first == same
    assert first is not same
    assert first != other
    assert BaseTest() != BaseTest()


def test_design_document_names():
    """Test the type tag derived from the class name."""
    assert BaseTest.design_document() == "base_test"
    assert Document.kind_for("base_test") is BaseTest
    assert Document.kind_for("unknown") is None
