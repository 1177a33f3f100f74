#!/usr/bin/env python3
"""
Lookup engine configuration.

Example tscat.yaml:
```yaml
catalog_dir: translations
file_pattern: "lrc_{locale}.ts"
default_locale: pt_BR
fallbacks:
  pt_BR: [pt_BR, pt]
accept_unfinished: false
plural_rules: null      # path to a custom plural table, bundled one if null
```

Relative paths are resolved against the directory holding the config file.
"""

import logging
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

import yaml

from .plurals import normalize_locale

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Where catalogs live and how the engine chains them."""
    catalog_dir: str = "."
    file_pattern: str = "{locale}.ts"
    locales: list = field(default_factory=list)  # empty: discover from file_pattern
    fallbacks: dict = field(default_factory=dict)
    default_locale: Optional[str] = None
    accept_unfinished: bool = False
    plural_rules: Optional[str] = None
    base_dir: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        data = asdict(self)
        del data["base_dir"]
        return data

    @classmethod
    def from_dict(cls, data: dict, base_dir: str = "") -> "EngineConfig":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        known = {f.name for f in fields(cls)} - {"base_dir"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        if "{locale}" not in data.get("file_pattern", "{locale}"):
            raise ValueError("file_pattern must contain '{locale}'")

        data = dict(data)
        data["fallbacks"] = {
            normalize_locale(locale): [normalize_locale(l) for l in chain]
            for locale, chain in (data.get("fallbacks") or {}).items()
        }
        data["locales"] = [normalize_locale(l) for l in data.get("locales") or []]
        if data.get("default_locale"):
            data["default_locale"] = normalize_locale(data["default_locale"])
        return cls(**data, base_dir=base_dir)

    def resolve_path(self, value: str) -> Path:
        path = Path(value)
        if not path.is_absolute() and self.base_dir:
            path = Path(self.base_dir) / path
        return path

    def catalog_paths(self) -> dict[str, Path]:
        """Map locale -> catalog file, for listed locales or every file matching file_pattern."""
        directory = self.resolve_path(self.catalog_dir)

        if self.locales:
            paths = {}
            for locale in self.locales:
                path = directory / self.file_pattern.format(locale=locale)
                if path.exists():
                    paths[locale] = path
                else:
                    logger.warning("No catalog file for locale %s: %s", locale, path)
            return paths

        prefix, _, suffix = self.file_pattern.partition("{locale}")
        matcher = re.compile(re.escape(prefix) + r"(?P<locale>[A-Za-z]{2,3}(?:[_-][A-Za-z0-9]+)?)" + re.escape(suffix) + "$")
        paths = {}
        for path in sorted(directory.glob(prefix + "*" + suffix)):
            match = matcher.match(path.name)
            if match:
                paths[normalize_locale(match.group("locale"))] = path
        return paths


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Read a YAML engine configuration file."""
    path = Path(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    config = EngineConfig.from_dict(data, base_dir=str(path.parent))
    if config.plural_rules:
        config.plural_rules = str(config.resolve_path(config.plural_rules))
    return config
