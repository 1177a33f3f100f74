"""
tscat - translation catalog engine for Qt Linguist style catalogs

Keeps per-language catalogs in sync with the strings found in source code,
and resolves display text at runtime through a locale fallback chain.
Reads and writes Qt Linguist TS files, with GNU gettext PO as interchange.

Quick start:
    tscat update --input app_pt_BR.ts --extraction extraction.json --language pt_BR
    tscat stats --input app_pt_BR.ts
    tscat resolve --catalog pt_BR=app_pt_BR.ts --context Call --source New
"""

__version__ = "1.0.0"

from .catalog import Catalog, Context, Location, Message, MessageKey, Status
from .config import EngineConfig, load_config
from .errors import (
    CatalogError,
    DuplicateExtraction,
    DuplicateKey,
    InvalidSource,
    LocaleUnavailable,
    ParseError,
)
from .extraction import ExtractedMessage, load_extraction, parse_extraction
from .format_handlers import FormatRegistry
from .lookup import CatalogChain, LookupEngine
from .plurals import PluralRule, PluralRules
from .reconciler import MergeIssue, MergeReport, MergeResult, Reconciler, reconcile

__all__ = [
    "Catalog",
    "Context",
    "Location",
    "Message",
    "MessageKey",
    "Status",
    "EngineConfig",
    "load_config",
    "CatalogError",
    "DuplicateExtraction",
    "DuplicateKey",
    "InvalidSource",
    "LocaleUnavailable",
    "ParseError",
    "ExtractedMessage",
    "load_extraction",
    "parse_extraction",
    "FormatRegistry",
    "CatalogChain",
    "LookupEngine",
    "PluralRule",
    "PluralRules",
    "MergeIssue",
    "MergeReport",
    "MergeResult",
    "Reconciler",
    "reconcile",
]
