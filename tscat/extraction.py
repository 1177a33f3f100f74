#!/usr/bin/env python3
"""
Extraction input handed over by the source scanner.

The scanner produces an ordered list of records, one per translatable
string found in source:

    [context, source_text, disambiguation, [[file, line], ...], is_plural]

or the same fields as an object:

    {"context": "Call", "source_text": "New", "disambiguation": null,
     "locations": [["src/call.cpp", 12]], "is_plural": false}

No other shape is accepted. Records are validated one at a time so a
malformed record can be rejected without losing the rest of the batch.
"""

import json
from pathlib import Path
from typing import Any, NamedTuple, Optional, Union

import yaml

from .catalog import Location, MessageKey
from .errors import InvalidSource, ParseError

RECORD_FIELDS = ("context", "source_text", "disambiguation", "locations", "is_plural")


class ExtractedMessage(NamedTuple):
    """One validated extraction record."""
    context: str
    source_text: str
    disambiguation: Optional[str]
    locations: tuple[Location, ...]
    is_plural: bool

    @property
    def key(self) -> MessageKey:
        return MessageKey.of(self.source_text, self.disambiguation)

    @classmethod
    def coerce(cls, record: Any) -> "ExtractedMessage":
        """
        Validate a raw record and convert it.

        Args:
            record: ExtractedMessage, 5-item list/tuple, or dict with exactly RECORD_FIELDS

        Raises:
            InvalidSource: If the record is malformed or its source text is empty
        """
        if isinstance(record, ExtractedMessage):
            fields = tuple(record)
        elif isinstance(record, dict):
            if set(record) != set(RECORD_FIELDS):
                raise InvalidSource(f"Record keys must be {', '.join(RECORD_FIELDS)}; got {', '.join(sorted(map(str, record)))}")
            fields = tuple(record[name] for name in RECORD_FIELDS)
        elif isinstance(record, (list, tuple)):
            if len(record) != len(RECORD_FIELDS):
                raise InvalidSource(f"Record must have {len(RECORD_FIELDS)} fields, got {len(record)}")
            fields = tuple(record)
        else:
            raise InvalidSource(f"Unsupported record type: {type(record).__name__}")

        context, source_text, disambiguation, locations, is_plural = fields

        if not isinstance(context, str):
            raise InvalidSource(f"Context must be a string, got {type(context).__name__}")
        if not isinstance(source_text, str) or not source_text:
            raise InvalidSource(f"Empty source text in context '{context}'")
        if disambiguation is not None and not isinstance(disambiguation, str):
            raise InvalidSource(f"Disambiguation must be a string or null for '{source_text}'")
        if not isinstance(is_plural, bool):
            raise InvalidSource(f"is_plural must be a boolean for '{source_text}'")

        return cls(
            context=context,
            source_text=source_text,
            disambiguation=disambiguation or None,
            locations=_coerce_locations(locations, source_text),
            is_plural=is_plural,
        )


def _coerce_locations(locations: Any, source_text: str) -> tuple[Location, ...]:
    """Validate (file, line) pairs; line numbers start at 1."""
    if not isinstance(locations, (list, tuple)):
        raise InvalidSource(f"Locations must be a list for '{source_text}'")
    result = []
    for loc in locations:
        if not isinstance(loc, (list, tuple)) or len(loc) != 2:
            raise InvalidSource(f"Location must be a [file, line] pair for '{source_text}': {loc!r}")
        filename, line = loc
        if not isinstance(filename, str) or not filename:
            raise InvalidSource(f"Location without file name for '{source_text}'")
        if isinstance(line, bool) or not isinstance(line, int) or line < 1:
            raise InvalidSource(f"Invalid line number {line!r} for '{source_text}' in {filename}")
        result.append(Location(filename, line))
    return tuple(result)


def parse_extraction(content: str, format_type: str = "json") -> list[Any]:
    """
    Parse extraction file content into raw records.

    Records are not validated here; the reconciler validates each one so a
    bad record only costs that record.

    Raises:
        ParseError: If the content is not a list of records
    """
    if format_type == "json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e.msg}", line=e.lineno, offset=e.colno)
    elif format_type in ("yaml", "yml"):
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                raise ParseError(f"Invalid YAML: {getattr(e, 'problem', e)}", line=mark.line + 1, offset=mark.column + 1)
            raise ParseError(f"Invalid YAML: {e}")
    else:
        raise ValueError(f"Unknown extraction format: {format_type}. Available: json, yaml")

    if data is None:
        return []
    if not isinstance(data, list):
        raise ParseError(f"Extraction must be a list of records, got {type(data).__name__}", line=1)
    return data


def load_extraction(path: Union[str, Path]) -> list[Any]:
    """Read an extraction file (.json, .yaml or .yml)."""
    path = Path(path)
    format_type = path.suffix.lower().lstrip(".") or "json"
    if format_type not in ("json", "yaml", "yml"):
        format_type = "json"
    return parse_extraction(path.read_text(encoding="utf-8"), format_type)
