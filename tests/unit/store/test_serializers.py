"""Unit tests for payload shape detection and serialization."""

from __future__ import annotations

import pytest

from store.serializers import (
    data_type_for_extension,
    detect_data_type,
    file_extension,
    serialize_payload,
)


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ([{"id": 1}], "json-array"),
        ((1, 2), "json-array"),
        ({"id": 1}, "json-object"),
        ("  <root/>", "xml"),
        ("plain text", "text"),
        (42, "text"),
    ],
)
def test_detect_data_type_classifies_payloads(payload, expected) -> None:
    """Payload shapes should map onto the four data types."""
    assert detect_data_type(payload) == expected


def test_serialize_payload_uses_four_space_indent() -> None:
    """JSON chunks should be written with 4-space indentation."""
    assert serialize_payload({"a": 1}) == '{\n    "a": 1\n}'


def test_serialize_payload_keeps_non_ascii() -> None:
    """Non-ASCII characters should be written as-is."""
    assert "café" in serialize_payload(["café"])


def test_file_extension_defaults_to_json() -> None:
    """Unknown data types should use the JSON extension."""
    assert (file_extension(None), file_extension("text"), file_extension("xml")) == (
        "json",
        "txt",
        "xml",
    )


def test_data_type_for_extension_leaves_json_ambiguous() -> None:
    """JSON extensions cannot tell arrays from objects."""
    assert data_type_for_extension(".json") is None
