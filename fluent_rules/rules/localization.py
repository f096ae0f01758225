"""
YAML message catalog localizer.

A catalog maps locales to message keys, optionally grouped by resource
name:

    en:
      Password_Required: "{0} is mandatory."
      UserMessages:
        Email_EmailAddress: "{0} must be an e-mail address."
    fr:
      Password_Required: "{0} est obligatoire."

The localizer is a callable `(resource, key, locale) -> str | None` and can
be passed anywhere a Localizer is accepted.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import FluentRulesError


class CatalogNotFoundError(FluentRulesError):
    """Message catalog file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Message catalog not found: {path}")


def _resource_name(resource: Any) -> Optional[str]:
    if resource is None:
        return None
    if isinstance(resource, str):
        return resource
    if isinstance(resource, type):
        return resource.__name__
    return None


class YamlCatalogLocalizer:
    """
    Localizer backed by a YAML (or already-parsed dict) catalog.

    Lookup order for locale "fr-CA": fr-CA, fr, then the default locale.
    Within a locale, a section named after the resource wins over the flat
    key.
    """

    def __init__(self, catalog: Dict[str, Any], default_locale: str = "en", source: Optional[Path] = None):
        if not isinstance(catalog, Mapping):
            raise ValueError(f"Message catalog must be a mapping of locales, got {type(catalog).__name__}")
        for locale, section in catalog.items():
            if not isinstance(section, Mapping):
                raise ValueError(f"Catalog section for locale '{locale}' must be a mapping")
        self.catalog = {str(k): dict(v) for k, v in catalog.items()}
        self.default_locale = default_locale
        self.source = source

    @classmethod
    def from_file(cls, path: Union[str, Path], default_locale: str = "en") -> "YamlCatalogLocalizer":
        yaml_path = Path(path)
        if not yaml_path.exists():
            raise CatalogNotFoundError(yaml_path)

        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            raise ValueError(f"Message catalog is empty: {yaml_path}")

        return cls(data, default_locale=default_locale, source=yaml_path)

    @property
    def locales(self) -> List[str]:
        return list(self.catalog.keys())

    def _candidates(self, locale: Optional[str]) -> List[str]:
        candidates = []
        if locale:
            candidates.append(locale)
            base = locale.replace("_", "-").split("-")[0]
            if base != locale:
                candidates.append(base)
        if self.default_locale not in candidates:
            candidates.append(self.default_locale)
        return candidates

    def lookup(self, key: str, locale: Optional[str] = None, resource: Any = None) -> Optional[str]:
        name = _resource_name(resource)
        for candidate in self._candidates(locale):
            section = self.catalog.get(candidate)
            if section is None:
                continue
            if name is not None:
                grouped = section.get(name)
                if isinstance(grouped, Mapping):
                    value = grouped.get(key)
                    if isinstance(value, str) and value.strip():
                        return value
            value = section.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return None

    def __call__(self, resource: Any, key: str, locale: Optional[str] = None) -> Optional[str]:
        return self.lookup(key, locale, resource)

    def keys(self, locale: str) -> List[str]:
        """Flattened keys for one locale; grouped keys appear as Resource.key."""
        section = self.catalog.get(locale, {})
        keys = []
        for key, value in section.items():
            if isinstance(value, Mapping):
                keys.extend(f"{key}.{sub}" for sub in value.keys())
            else:
                keys.append(str(key))
        return sorted(keys)
