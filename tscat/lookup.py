#!/usr/bin/env python3
"""
Runtime translation lookup.

The engine keeps the loaded catalogs and one published CatalogChain. A
language switch builds a new chain from frozen per-catalog indexes and
publishes it with a single attribute assignment, so a lookup that already
grabbed the old chain finishes against it. Lookups take no lock; writers
(load, switch, teardown) serialize on one lock among themselves.

Resolution, for each catalog in chain order:
    exact (context, source, disambiguation) match
    -> plural slot via the locale's plural rule when a count is given
    -> first non-empty text that is not Unfinished wins
Nothing qualifies -> the source text itself. resolve() never raises.
"""

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping, NamedTuple, Optional, Union

from .catalog import Catalog, MessageKey, Status
from .errors import LocaleUnavailable, ParseError
from .format_handlers import FormatRegistry
from .plurals import PluralRule, PluralRules, base_language, default_rules, normalize_locale

if TYPE_CHECKING:
    from .config import EngineConfig

logger = logging.getLogger(__name__)


class _Entry(NamedTuple):
    """Frozen view of a message, detached from the mutable Catalog."""
    status: Status
    is_plural: bool
    translation: str
    plural_forms: tuple[str, ...]


class ChainLink(NamedTuple):
    locale: str
    rule: PluralRule
    index: Mapping[tuple[str, MessageKey], _Entry]


def _index_catalog(catalog: Catalog) -> Mapping[tuple[str, MessageKey], _Entry]:
    index = {}
    for context, message in catalog.messages():
        index[(context, message.key)] = _Entry(
            status=message.status,
            is_plural=message.is_plural,
            translation=message.translation,
            plural_forms=tuple(message.plural_forms),
        )
    return MappingProxyType(index)


class CatalogChain:
    """Immutable, ordered fallback chain of indexed catalogs."""

    def __init__(self, links: Iterable[ChainLink] = ()):
        self._links: tuple[ChainLink, ...] = tuple(links)

    @classmethod
    def build(cls, catalogs: Iterable[tuple[str, Catalog]], plural_rules: PluralRules) -> "CatalogChain":
        """Snapshot (locale, catalog) pairs into a chain."""
        return cls(
            ChainLink(locale, plural_rules.rule_for(locale), _index_catalog(catalog))
            for locale, catalog in catalogs
        )

    @property
    def locales(self) -> list[str]:
        return [link.locale for link in self._links]

    def __len__(self) -> int:
        return len(self._links)

    def lookup(
        self,
        context: str,
        source_text: str,
        disambiguation: Optional[str] = None,
        plural_count: Optional[int] = None,
        accept_unfinished: bool = False,
    ) -> Optional[str]:
        """First usable translation in chain order, or None."""
        key = (context, MessageKey.of(source_text, disambiguation))
        for link in self._links:
            entry = link.index.get(key)
            if entry is None:
                continue
            if entry.status is Status.UNFINISHED and not accept_unfinished:
                continue

            if entry.is_plural:
                slot = link.rule.category(plural_count) if plural_count is not None else 0
                text = entry.plural_forms[slot] if slot < len(entry.plural_forms) else ""
            else:
                text = entry.translation

            if text:
                return text
        return None


class LookupEngine:
    """
    Host-owned translation service with an explicit load/switch/teardown lifecycle.

    Args:
        plural_rules: Plural table (bundled table by default)
        accept_unfinished: Serve translations still flagged Unfinished
    """

    def __init__(self, plural_rules: Optional[PluralRules] = None, accept_unfinished: bool = False):
        self.plural_rules = plural_rules or default_rules()
        self.accept_unfinished = accept_unfinished
        self._catalogs: dict[str, Catalog] = {}
        self._chain = CatalogChain()
        self._active_locale: Optional[str] = None
        self._active_candidates: list[str] = []
        self._write_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "EngineConfig") -> "LookupEngine":
        """Build an engine and load every catalog the configuration lists."""
        plural_rules = PluralRules.load(config.plural_rules) if config.plural_rules else None
        engine = cls(plural_rules=plural_rules, accept_unfinished=config.accept_unfinished)
        for locale, path in config.catalog_paths().items():
            try:
                engine.load_file(locale, path)
            except ParseError as e:
                logger.warning("Skipping catalog %s for %s: %s", path, locale, e)
        if config.default_locale:
            engine.set_active_locale(config.default_locale, config.fallbacks.get(config.default_locale))
        return engine

    # lifecycle

    def load(self, locale: str, catalog: Catalog) -> None:
        """
        Register a catalog for locale, replacing any previous one.

        If the locale is part of the active chain, the chain is rebuilt and
        republished.
        """
        locale = normalize_locale(locale)
        with self._write_lock:
            catalogs = dict(self._catalogs)
            catalogs[locale] = catalog
            self._catalogs = catalogs
            if locale in self._active_candidates:
                self._publish(self._active_candidates)
        logger.debug("Loaded catalog for %s (%d messages)", locale, len(catalog))

    def load_file(self, locale: str, path: Union[str, Path], format_type: Optional[str] = None) -> Catalog:
        """
        Decode a catalog file and register it.

        Raises:
            ParseError: If the file is malformed; nothing is registered
        """
        handler = FormatRegistry.get_handler(format_type) if format_type else FormatRegistry.detect_format(str(path))
        catalog = handler.load(path)
        if not catalog.language:
            catalog.language = normalize_locale(locale)
        self.load(locale, catalog)
        return catalog

    def unload(self, locale: str) -> bool:
        locale = normalize_locale(locale)
        with self._write_lock:
            if locale not in self._catalogs:
                return False
            catalogs = dict(self._catalogs)
            del catalogs[locale]
            self._catalogs = catalogs
            if locale in self._active_candidates:
                self._publish(self._active_candidates)
        return True

    def available_locales(self) -> list[str]:
        return list(self._catalogs)

    def fallback_locales(self, locale: str) -> list[str]:
        """Default chain for locale: the locale itself, then its base language."""
        locale = normalize_locale(locale)
        candidates = [locale]
        base = base_language(locale)
        if base != locale:
            candidates.append(base)
        return candidates

    def switch_locale(self, locale: str, fallbacks: Optional[list[str]] = None) -> CatalogChain:
        """
        Publish a new chain for locale.

        Args:
            locale: Locale to activate
            fallbacks: Explicit chain (defaults to locale then base language)

        Raises:
            LocaleUnavailable: If no catalog in the chain is loaded; the
                previously published chain stays in service
        """
        candidates = [normalize_locale(l) for l in fallbacks] if fallbacks else self.fallback_locales(locale)
        with self._write_lock:
            if not any(c in self._catalogs for c in candidates):
                raise LocaleUnavailable(locale)
            chain = self._publish(candidates)
            active = self._active_locale = normalize_locale(locale)
        logger.info("Active locale: %s (chain: %s)", active, ", ".join(chain.locales))
        return chain

    def set_active_locale(self, locale: str, fallbacks: Optional[list[str]] = None) -> bool:
        """Like switch_locale, but reports failure as False."""
        try:
            self.switch_locale(locale, fallbacks)
        except LocaleUnavailable as e:
            logger.warning("%s; keeping %s", e, self._active_locale or "source texts")
            return False
        return True

    def teardown(self) -> None:
        """Unpublish the chain and drop all loaded catalogs."""
        with self._write_lock:
            self._chain = CatalogChain()
            self._catalogs = {}
            self._active_locale = None
            self._active_candidates = []

    def _publish(self, candidates: list[str]) -> CatalogChain:
        # caller holds the write lock
        chain = CatalogChain.build(
            ((c, self._catalogs[c]) for c in candidates if c in self._catalogs),
            self.plural_rules,
        )
        self._active_candidates = list(candidates)
        self._chain = chain
        return chain

    @property
    def active_locale(self) -> Optional[str]:
        return self._active_locale

    @property
    def active_chain(self) -> CatalogChain:
        return self._chain

    # queries

    def resolve(
        self,
        context: str,
        source_text: str,
        disambiguation: Optional[str] = None,
        plural_count: Optional[int] = None,
        chain: Optional[CatalogChain] = None,
    ) -> str:
        """
        Display text for a message.

        Args:
            context: Message context
            source_text: Source text (returned when no usable translation exists)
            disambiguation: Optional disambiguation
            plural_count: Quantity for plural messages; '%n' is replaced by it
            chain: Chain snapshot to use instead of the published one

        Returns:
            Translation, or source_text
        """
        chain = self._chain if chain is None else chain
        try:
            text = chain.lookup(context, source_text, disambiguation, plural_count, self.accept_unfinished)
            if not text:
                logger.debug("No translation for '%s' in context '%s'", source_text, context)
                text = source_text
            if plural_count is not None:
                text = text.replace("%n", str(plural_count))
        except Exception as e:
            # resolve never raises
            logger.warning("Lookup failed for '%s' in '%s': %s: %s", source_text, context, type(e).__name__, e)
            return source_text
        return text
