#!/usr/bin/env python3
"""
Tests for extraction records and extraction file loading.
"""

import pytest

from tscat.catalog import Location, MessageKey
from tscat.errors import InvalidSource, ParseError
from tscat.extraction import ExtractedMessage, load_extraction, parse_extraction


def test_coerce_list_record():
    """Test 1: The positional record shape."""
    ext = ExtractedMessage.coerce(["Call", "New", None, [["src/call.cpp", 12]], False])

    assert ext.context == "Call"
    assert ext.locations == (Location("src/call.cpp", 12),)
    assert ext.key == MessageKey("New", "")
    assert ext.is_plural is False


def test_coerce_dict_record():
    """Test 2: The keyed record shape; empty disambiguation is normalized away."""
    ext = ExtractedMessage.coerce({
        "context": "Call",
        "source_text": "%n call(s)",
        "disambiguation": "",
        "locations": [],
        "is_plural": True,
    })
    assert ext.disambiguation is None
    assert ext.is_plural


@pytest.mark.parametrize("record", [
    ["Call", "", None, [], False],
    ["Call", "New", None, [], 0],
    ["Call", "New", 5, [], False],
    ["Call", "New", None, [["src/call.cpp", 0]], False],
    ["Call", "New", None, [["src/call.cpp", True]], False],
    ["Call", "New", None, [["", 3]], False],
    ["Call", "New", None, "src/call.cpp:3", False],
    ["Call", "New", None, []],
    {"context": "Call", "source_text": "New", "locations": [], "is_plural": False},
    {"context": "Call", "source_text": "New", "disambiguation": None, "locations": [],
     "is_plural": False, "line": 3},
    "Call/New",
    [None, "New", None, [], False],
])
def test_invalid_records(record):
    """Test 3: Every malformed shape raises InvalidSource."""
    with pytest.raises(InvalidSource):
        ExtractedMessage.coerce(record)


def test_parse_json_and_yaml():
    """Test 4: Both file formats give the same raw records."""
    json_records = parse_extraction('[["Call", "New", null, [["src/call.cpp", 12]], false]]')
    yaml_records = parse_extraction(
        "- [Call, New, null, [[src/call.cpp, 12]], false]\n",
        "yaml",
    )
    assert json_records == yaml_records == [["Call", "New", None, [["src/call.cpp", 12]], False]]
    assert parse_extraction("", "yaml") == []


def test_parse_errors():
    """Test 5: Syntax errors and non-list documents raise ParseError with a line."""
    with pytest.raises(ParseError) as excinfo:
        parse_extraction('[\n  ["Call", "New",\n]')
    assert excinfo.value.line == 3

    with pytest.raises(ParseError) as excinfo:
        parse_extraction('{"context": "Call"}')
    assert excinfo.value.line == 1

    with pytest.raises(ParseError) as excinfo:
        parse_extraction("- [Call, New\n- x\n", "yaml")
    assert excinfo.value.line is not None

    with pytest.raises(ValueError):
        parse_extraction("[]", "xml")


def test_load_extraction_by_suffix(tmp_path):
    """Test 6: The file suffix picks the parser."""
    yaml_path = tmp_path / "extraction.yaml"
    yaml_path.write_text("- {context: Call, source_text: New, disambiguation: null, "
                         "locations: [], is_plural: false}\n", encoding="utf-8")
    json_path = tmp_path / "extraction.json"
    json_path.write_text('[{"context": "Call", "source_text": "New", "disambiguation": null, '
                         '"locations": [], "is_plural": false}]', encoding="utf-8")

    assert load_extraction(yaml_path) == load_extraction(json_path)
