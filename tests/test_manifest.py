"""Tests for manifest library."""

import pytest

from cpstate.exceptions import InputException
from cpstate.manifest import (
    PAUSED_ANNOTATION,
    ExportMeta,
    GroupKind,
    GroupMeta,
    GroupResource,
    ImportResult,
    NamedResource,
    add_annotations,
    condition_status,
    conditions_met,
    format_conditions,
    is_paused,
    parse_object,
    remove_annotations,
    strip_server_metadata,
)


def test_group_resource_parse() -> None:
    """Test parsing a group resource from a directory name."""
    gr = GroupResource.parse("compositions.apiextensions.crossplane.io")
    assert gr.resource == "compositions"
    assert gr.group == "apiextensions.crossplane.io"
    assert str(gr) == "compositions.apiextensions.crossplane.io"


def test_core_group_resource() -> None:
    """Test a group resource in the core group."""
    gr = GroupResource.parse("namespaces")
    assert gr == GroupResource(group="", resource="namespaces")
    assert str(gr) == "namespaces"


def test_empty_group_resource() -> None:
    """Test an empty group resource is rejected."""
    with pytest.raises(InputException):
        GroupResource.parse("")


def test_group_kind() -> None:
    """Test rendering of a group kind."""
    assert str(GroupKind("pkg.crossplane.io", "Provider")) == "Provider.pkg.crossplane.io"
    assert str(GroupKind("", "Namespace")) == "Namespace"


def test_named_resource() -> None:
    """Test the identifier of an unstructured object."""
    obj = {"kind": "Secret", "metadata": {"name": "s1", "namespace": "ns1"}}
    resource_id = NamedResource.from_object(obj)
    assert resource_id == NamedResource("Secret", "ns1", "s1")
    assert str(resource_id) == "Secret/ns1/s1"
    cluster_scoped = NamedResource.from_object({"kind": "Namespace", "metadata": {"name": "ns1"}})
    assert str(cluster_scoped) == "Namespace/ns1"


def test_parse_export_meta() -> None:
    """Test parsing the export metadata record."""
    meta = ExportMeta.parse_yaml(
        """\
version: v1alpha1
exportedAt: "2024-01-02T03:04:05Z"
engineVersion: v1.14.0
featureFlags:
  - --enable-usages
  - --enable-realtime-compositions
"""
    )
    assert meta.engine_version == "v1.14.0"
    assert meta.feature_flags == ["--enable-usages", "--enable-realtime-compositions"]
    assert meta.version == "v1alpha1"
    assert meta.exported_at == "2024-01-02T03:04:05Z"


def test_parse_nested_export_meta() -> None:
    """Test parsing export metadata with nested engine details."""
    meta = ExportMeta.parse_yaml(
        """\
version: v1alpha1
crossplane:
  version: v1.15.2
  featureFlags:
    - --enable-usages
"""
    )
    assert meta.engine_version == "v1.15.2"
    assert meta.feature_flags == ["--enable-usages"]


def test_export_meta_without_flags() -> None:
    """Test export metadata without feature flags."""
    meta = ExportMeta.parse_yaml("engineVersion: v1.14.0\n")
    assert meta.feature_flags == []


@pytest.mark.parametrize(
    "content",
    [
        "version: v1alpha1\n",
        "- a\n- b\n",
        "engineVersion: [v1\n",
        "",
    ],
)
def test_invalid_export_meta(content: str) -> None:
    """Test export metadata that cannot be used."""
    with pytest.raises(InputException):
        ExportMeta.parse_yaml(content)


def test_parse_group_meta() -> None:
    """Test parsing the optional group metadata."""
    meta = GroupMeta.parse_yaml(
        """\
groupResource: widgets.example.io
categories:
  - crossplane
  - managed
withStatusSubresource: true
"""
    )
    assert meta.group_resource == "widgets.example.io"
    assert meta.categories == ["crossplane", "managed"]
    assert meta.with_status_subresource


def test_empty_group_meta() -> None:
    """Test an empty group metadata file."""
    meta = GroupMeta.parse_yaml("")
    assert meta.categories == []
    assert not meta.with_status_subresource

    """Test a group metadata file that is not valid yaml."""
def test_invalid_group_meta() -> None:
    """Test a group metadata file that is not a mapping."""
    with pytest.raises(InputException):
        GroupMeta.parse_yaml("categories: [managed\n")


def test_group_meta_not_mapping() -> None:
    """Test a group metadata file holding a list."""
    with pytest.raises(InputException, match="expected a mapping"):
        GroupMeta.parse_yaml("- managed\n")


def test_format_conditions() -> None:
    """Test joining condition types into a sentence."""
    assert format_conditions(()) == ""
    assert format_conditions(("Established",)) == "Established"
    assert format_conditions(("Installed", "Healthy")) == "Installed and Healthy"
    assert format_conditions(("A", "B", "C")) == "A, B, and C"


def test_import_result() -> None:
    """Test accumulating import counts."""
    result = ImportResult()
    result.add("namespaces", 2)
    result.add("secrets", 3)
    assert result.total == 5


def test_parse_object() -> None:
    """Test parsing a serialized object."""
    obj = parse_object(
        "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: ns1\n", "namespaces/ns1.yaml"
    )
    assert obj["metadata"]["name"] == "ns1"


@pytest.mark.parametrize(
    ("content", "match"),
    [
        ("kind: Namespace\nmetadata:\n  name: ns1\n", "missing apiVersion"),
        ("apiVersion: v1\nmetadata:\n  name: ns1\n", "missing kind"),
        ("apiVersion: v1\nkind: Namespace\nmetadata: {}\n", "missing metadata.name"),
        ("- a\n", "expected a mapping"),
        ("apiVersion: [v1\n", "Cannot parse"),
    ],
)
def test_parse_invalid_object(content: str, match: str) -> None:
    """Test objects missing their identity."""
    with pytest.raises(InputException, match=match):
        parse_object(content, "namespaces/ns1.yaml")


def test_annotations() -> None:
    """Test adding and removing annotations."""
    obj = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "ns1"}}
    assert not is_paused(obj)
    add_annotations(obj, {PAUSED_ANNOTATION: "true", "other": "x"})
    assert is_paused(obj)
    remove_annotations(obj, PAUSED_ANNOTATION)
    assert not is_paused(obj)
    assert obj["metadata"]["annotations"] == {"other": "x"}
    remove_annotations(obj, "other")
    assert "annotations" not in obj["metadata"]


def test_remove_missing_annotation() -> None:
    """Test removing an annotation from an object without annotations."""
    obj = {"metadata": {"name": "ns1"}}
    remove_annotations(obj, PAUSED_ANNOTATION)
    assert obj == {"metadata": {"name": "ns1"}}


def test_strip_server_metadata() -> None:
    """Test removing server owned fields."""
    obj = {
        "metadata": {
            "name": "ns1",
            "uid": "1234",
            "resourceVersion": "42",
            "creationTimestamp": "2024-01-01T00:00:00Z",
            "managedFields": [],
            "generation": 3,
            "labels": {"a": "b"},
        }
    }
    strip_server_metadata(obj)
    assert obj == {"metadata": {"name": "ns1", "labels": {"a": "b"}}}


def test_conditions() -> None:
    """Test reading status conditions."""
    obj = {
        "status": {
            "conditions": [
                {"type": "Installed", "status": "True"},
                {"type": "Healthy", "status": "False"},
            ]
        }
    }
    assert condition_status(obj, "Installed") == "True"
    assert condition_status(obj, "Healthy") == "False"
    assert condition_status(obj, "Established") == "Unknown"
    assert condition_status({}, "Installed") == "Unknown"
    assert conditions_met(obj, ("Installed",))
    assert not conditions_met(obj, ("Installed", "Healthy"))
