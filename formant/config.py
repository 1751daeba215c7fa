"""Process-wide formatting configuration: time zone, locale table, defaults.

The configuration is read-only from the pipeline's point of view. A default
is built lazily from the bundled locale files and the ``FORMANT_*``
environment variables; applications replace it once at start-up with
:func:`configure`, and any form, parser or formatter can be handed an
explicit :class:`Configuration` instead.
"""

import copy
import dataclasses
import datetime
import logging
import os
from dataclasses import dataclass, field
from importlib.resources import files
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dateutil import tz

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIME_ZONE = "UTC"
DEFAULT_LOCALE = "en"
DEFAULT_COUNTRY = "US"
DEFAULT_CURRENCY_SCALE = 6


def _deep_merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in extra.items():
        key = str(key)
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        elif isinstance(value, Mapping):
            merged[key] = _deep_merge({}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(source: Any) -> Dict[str, Any]:
    with source.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Locale file {source} must contain a mapping of locales")
    return data


def load_bundled_translations() -> Dict[str, Any]:
    """Load every ``formant/locales/*.yml`` shipped with the package."""
    translations: Dict[str, Any] = {}
    locale_dir = files("formant").joinpath("locales")
    for entry in sorted(locale_dir.iterdir(), key=lambda e: e.name):
        if entry.name.endswith((".yml", ".yaml")):
            logger.debug("Loading bundled locale file %s", entry.name)
            translations = _deep_merge(translations, _read_yaml(entry))
    return translations


@dataclass(frozen=True)
class Configuration:
    """Time zone, locale table and parsing defaults.

    Attributes:
        time_zone: IANA zone name datetimes are resolved and rendered in
        default_locale: Locale used when a formatter is not given one
        default_country: ISO region phone numbers are resolved against
        currency_scale: Decimal places kept by the currency parser
        translations: Locale-keyed template table (``en.time.formats...``)
    """

    time_zone: str = DEFAULT_TIME_ZONE
    default_locale: str = DEFAULT_LOCALE
    default_country: str = DEFAULT_COUNTRY
    currency_scale: int = DEFAULT_CURRENCY_SCALE
    translations: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if tz.gettz(self.time_zone) is None:
            raise ConfigurationError(f"Unknown time zone '{self.time_zone}'")
        if self.currency_scale < 0:
            raise ConfigurationError("currency_scale must be non-negative")
        object.__setattr__(
            self, "translations", MappingProxyType(_deep_merge({}, self.translations))
        )

    @property
    def tzinfo(self) -> datetime.tzinfo:
        return tz.gettz(self.time_zone)

    def replace(self, **changes: Any) -> "Configuration":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def with_translations(self, locale: str, data: Mapping[str, Any]) -> "Configuration":
        """Return a copy with ``data`` deep-merged under ``locale``."""
        merged = _deep_merge(dict(self.translations), {locale: data})
        return dataclasses.replace(self, translations=merged)

    def load_locale_file(self, path: Union[str, Path]) -> "Configuration":
        """Return a copy with a YAML locale file merged in."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Locale file not found: {path}")
        logger.debug("Loading locale file %s", path)
        merged = _deep_merge(dict(self.translations), _read_yaml(path))
        return dataclasses.replace(self, translations=merged)

    # --- Lookup ---
    def locale_table(self, locale: Optional[str] = None) -> Mapping[str, Any]:
        locale = locale or self.default_locale
        table = self.translations.get(locale)
        if table is None:
            logger.warning("No translations loaded for locale '%s'", locale)
            raise ConfigurationError(f"Unknown locale '{locale}'")
        return table

    def translate(self, key: str, locale: Optional[str] = None, default: Any = None) -> Any:
        """Look up a dotted key such as ``time.formats.short``."""
        node: Any = self.locale_table(locale)
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def time_format(self, name: str, locale: Optional[str] = None) -> str:
        pattern = self.translate(f"time.formats.{name}", locale)
        if not isinstance(pattern, str):
            raise ConfigurationError(
                f"Time format '{name}' is not defined for locale '{locale or self.default_locale}'"
            )
        return pattern


def _from_environment() -> Configuration:
    scale = os.getenv("FORMANT_CURRENCY_SCALE")
    try:
        currency_scale = int(scale) if scale else DEFAULT_CURRENCY_SCALE
    except ValueError:
        raise ConfigurationError(
            f"FORMANT_CURRENCY_SCALE must be an integer, got '{scale}'"
        ) from None
    return Configuration(
        time_zone=os.getenv("FORMANT_TIME_ZONE", DEFAULT_TIME_ZONE),
        default_locale=os.getenv("FORMANT_LOCALE", DEFAULT_LOCALE),
        default_country=os.getenv("FORMANT_DEFAULT_COUNTRY", DEFAULT_COUNTRY),
        currency_scale=currency_scale,
        translations=load_bundled_translations(),
    )


_current: Optional[Configuration] = None


def get_config() -> Configuration:
    """Return the process-wide configuration, building it on first use."""
    global _current
    if _current is None:
        _current = _from_environment()
    return _current


def set_config(config: Configuration) -> Configuration:
    """Install ``config`` as the process-wide default and return the previous one."""
    global _current
    previous = get_config()
    _current = config
    return previous


def configure(**changes: Any) -> Configuration:
    """Replace the process-wide configuration with changed fields.

    Example:
        configure(time_zone="America/Chicago", default_country="US")
    """
    config = get_config().replace(**changes)
    set_config(config)
    logger.debug("Configured formant: %r", config)
    return config


def reset_config() -> Configuration:
    """Rebuild the default from the environment and bundled locales."""
    global _current
    _current = _from_environment()
    return _current
