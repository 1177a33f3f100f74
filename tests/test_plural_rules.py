#!/usr/bin/env python3
"""
Tests for the plural rule table and locale helpers.
"""

import pytest

from tscat.plurals import PluralRule, PluralRules, base_language, default_rules, normalize_locale


@pytest.mark.parametrize("raw,expected", [
    ("pt_BR", "pt_BR"),
    ("pt-BR", "pt_BR"),
    ("pt_br.UTF-8", "pt_BR"),
    ("sr_RS@latin", "sr_RS"),
    ("DE", "de"),
])
def test_normalize_locale(raw, expected):
    """Test 1: Locale spellings collapse to language_TERRITORY."""
    assert normalize_locale(raw) == expected


def test_base_language():
    """Test 2: Base language drops the territory."""
    assert base_language("pt-BR") == "pt"
    assert base_language("ja") == "ja"


def test_bundled_rules():
    """Test 3: Spot checks against known CLDR/gettext behaviour."""
    rules = default_rules()

    assert [rules.category("en", n) for n in (0, 1, 2)] == [1, 0, 1]
    assert [rules.category("pt_BR", n) for n in (0, 1, 2)] == [0, 0, 1]
    assert [rules.category("fr", n) for n in (0, 1, 2)] == [0, 0, 1]
    assert [rules.category("ja", n) for n in (0, 1, 100)] == [0, 0, 0]
    assert [rules.category("ru", n) for n in (1, 3, 5, 11, 21, 22, 25)] == [0, 1, 2, 2, 0, 1, 2]
    assert [rules.category("ar", n) for n in (0, 1, 2, 5, 11, 100)] == [0, 1, 2, 3, 4, 5]


def test_region_then_base_then_default():
    """Test 4: pt_BR has its own rule, pt_PT inherits pt, unknown languages get the default."""
    rules = default_rules()

    assert rules.rule_for("pt_BR").expression == "n > 1"
    assert rules.rule_for("pt_PT").expression == "n != 1"
    assert rules.rule_for("xx").expression == "n != 1"
    assert rules.nplurals("xx_YY") == 2
    assert "pt_BR" in rules
    assert "pt_PT" not in rules


def test_category_is_clamped():
    """Test 5: An expression that overshoots nplurals never indexes past the last slot."""
    rule = PluralRule.compile(2, "n")
    assert rule.category(7) == 1
    assert rule.category(-1) == 1  # negative quantities use their magnitude


def test_header():
    """Test 6: Rules render as a Plural-Forms header value."""
    assert default_rules().rule_for("pt_BR").header() == "nplurals=2; plural=(n > 1);"


def test_invalid_rules_rejected():
    """Test 7: Bad entries fail at load time, not at lookup time."""
    with pytest.raises(ValueError):
        PluralRule.compile(0, "0")
    with pytest.raises(ValueError):
        PluralRules.from_dict({"locales": {"xx": {"nplurals": 2}}})
    with pytest.raises(ValueError):
        PluralRules.from_dict({"locales": {"xx": {"nplurals": 2, "plural": "n +* 1"}}})


def test_load_custom_table(tmp_path):
    """Test 8: A YAML table on disk replaces the bundled one."""
    path = tmp_path / "plurals.yaml"
    path.write_text(
        "default: {nplurals: 1, plural: '0'}\n"
        "locales:\n"
        "  xx: {nplurals: 3, plural: 'n == 0 ? 0 : n == 1 ? 1 : 2'}\n",
        encoding="utf-8",
    )
    rules = PluralRules.load(path)

    assert rules.locales() == ["xx"]
    assert [rules.category("xx", n) for n in (0, 1, 9)] == [0, 1, 2]
    assert rules.nplurals("en") == 1
