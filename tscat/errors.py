#!/usr/bin/env python3
"""
Error taxonomy for catalog loading, merging and lookup.

ParseError is fatal to a single load. InvalidSource and DuplicateExtraction
are per-tuple merge problems; the reconciler records them and carries on
unless it runs in strict mode. DuplicateKey fails a single catalog mutation.
LocaleUnavailable is reported when a language switch has nothing to switch to.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for all tscat errors."""


class ParseError(CatalogError):
    """Malformed persisted catalog or extraction file."""

    def __init__(self, message: str, line: Optional[int] = None, offset: Optional[int] = None):
        self.message = message
        self.line = line
        self.offset = offset
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.offset is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.offset}: {self.message}"


class InvalidSource(CatalogError):
    """Extraction tuple that cannot become a message."""


class DuplicateExtraction(CatalogError):
    """Same identity key listed twice in one extraction batch."""


class DuplicateKey(CatalogError):
    """Catalog mutation with an identity key owned by another message."""


class LocaleUnavailable(CatalogError):
    """No loaded catalog for the requested locale."""

    def __init__(self, locale: str):
        self.locale = locale
        super().__init__(f"No catalog loaded for locale: {locale}")
