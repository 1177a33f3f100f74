#!/usr/bin/env python3
"""
Plural category rules.

Each locale maps to a gettext Plural-Forms expression that picks the
translation variant for a quantity. The table is plain data (YAML) and every
expression is compiled once into a pure function `n -> index`.
"""

import gettext
import logging
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = Path(__file__).parent / "data" / "plural_rules.yaml"
DEFAULT_EXPRESSION = "n != 1"


def normalize_locale(locale: str) -> str:
    """Normalize 'pt-BR' / 'pt_BR.UTF-8' / 'PT_br' to 'pt_BR'."""
    locale = locale.split(".", 1)[0].split("@", 1)[0].replace("-", "_")
    if "_" not in locale:
        return locale.lower()
    language, territory = locale.split("_", 1)
    return f"{language.lower()}_{territory.upper()}"


def base_language(locale: str) -> str:
    """'pt_BR' -> 'pt'."""
    return normalize_locale(locale).split("_", 1)[0]


class PluralRule(NamedTuple):
    """Compiled plural rule for one locale."""
    nplurals: int
    expression: str
    function: Callable[[int], int]

    @classmethod
    def compile(cls, nplurals: int, expression: str) -> "PluralRule":
        """
        Compile a Plural-Forms expression.

        Raises:
            ValueError: If nplurals is not positive or the expression is invalid
        """
        if not isinstance(nplurals, int) or nplurals < 1:
            raise ValueError(f"nplurals must be a positive integer, got {nplurals!r}")
        return cls(nplurals, expression, gettext.c2py(str(expression)))

    def category(self, n: int) -> int:
        """Plural slot index for quantity n, clamped to the available slots."""
        index = self.function(abs(int(n)))
        return min(max(index, 0), self.nplurals - 1)

    def header(self) -> str:
        """Rule as a Plural-Forms header value."""
        return f"nplurals={self.nplurals}; plural=({self.expression});"


class PluralRules:
    """
    Table of locale -> PluralRule.

    Lookup order: exact locale, base language, default rule.
    """

    def __init__(self, rules: Optional[dict[str, PluralRule]] = None, default: Optional[PluralRule] = None):
        self._rules: dict[str, PluralRule] = {
            normalize_locale(locale): rule for locale, rule in (rules or {}).items()
        }
        self.default = default or PluralRule.compile(2, DEFAULT_EXPRESSION)

    @classmethod
    def from_dict(cls, data: dict) -> "PluralRules":
        """Build from the parsed YAML structure ({default: {...}, locales: {...}})."""
        if not isinstance(data, dict):
            raise ValueError("Plural rule table must be a mapping")

        default = None
        if data.get("default"):
            default = _compile_entry("default", data["default"])

        rules = {}
        for locale, entry in (data.get("locales") or {}).items():
            rules[str(locale)] = _compile_entry(str(locale), entry)
        return cls(rules, default)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "PluralRules":
        """Load a YAML rule table (the bundled one if path is None)."""
        path = Path(path) if path else DEFAULT_RULES_FILE
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        rules = cls.from_dict(data)
        logger.debug("Loaded %d plural rules from %s", len(rules._rules), path)
        return rules

    def rule_for(self, locale: str) -> PluralRule:
        locale = normalize_locale(locale or "")
        if locale in self._rules:
            return self._rules[locale]
        base = base_language(locale)
        if base in self._rules:
            return self._rules[base]
        return self.default

    def category(self, locale: str, n: int) -> int:
        """Plural slot index for quantity n in locale."""
        return self.rule_for(locale).category(n)

    def nplurals(self, locale: str) -> int:
        return self.rule_for(locale).nplurals

    def locales(self) -> list[str]:
        return list(self._rules)

    def __contains__(self, locale: str) -> bool:
        return normalize_locale(locale) in self._rules


def _compile_entry(locale: str, entry) -> PluralRule:
    if not isinstance(entry, dict) or "nplurals" not in entry or "plural" not in entry:
        raise ValueError(f"Plural rule for '{locale}' needs 'nplurals' and 'plural'")
    try:
        return PluralRule.compile(entry["nplurals"], entry["plural"])
    except ValueError as e:
        raise ValueError(f"Invalid plural rule for '{locale}': {e}")


_default_rules: Optional[PluralRules] = None


def default_rules() -> PluralRules:
    """Bundled rule table, loaded on first use."""
    global _default_rules
    if _default_rules is None:
        _default_rules = PluralRules.load()
    return _default_rules
