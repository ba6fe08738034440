"""Immutable country/state/city and dialing-code reference data."""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from src.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DialCode:
    """International dialing prefix offered for phone numbers."""

    code: str
    country: str
    flag: str = ""


class LocationCatalog:
    """Read-only country → state → city lookup plus dialing codes.

    Built once from plain mappings; every accessor returns tuples so
    callers cannot mutate the shared table. Order of countries, states
    and cities is preserved from the source data.
    """

    def __init__(
        self,
        countries: Mapping[str, Mapping[str, list[str] | tuple[str, ...]]],
        dial_codes: list[DialCode] | tuple[DialCode, ...] = (),
    ) -> None:
        self._countries = MappingProxyType(
            {
                country: MappingProxyType({state: tuple(cities) for state, cities in states.items()})
                for country, states in countries.items()
            }
        )
        self._dial_codes = tuple(dial_codes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LocationCatalog":
        """Build a catalog from the decoded reference JSON."""
        dial_codes = [DialCode(**entry) for entry in data.get("dial_codes", [])]
        return cls(data.get("countries", {}), dial_codes)

    @classmethod
    def load(cls, path: Path) -> "LocationCatalog":
        """Load a catalog from a reference JSON file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        catalog = cls.from_dict(data)
        logger.info(
            "Loaded %d countries and %d dial codes from %s",
            len(catalog.countries()),
            len(catalog.dial_codes()),
            path,
        )
        return catalog

    def countries(self) -> tuple[str, ...]:
        return tuple(self._countries)

    def states(self, country: str) -> tuple[str, ...]:
        """States of ``country``; empty for unknown or blank countries."""
        return tuple(self._countries.get(country, {}))

    def cities(self, country: str, state: str) -> tuple[str, ...]:
        """Cities of ``state`` within ``country``; empty when either is unknown."""
        return self._countries.get(country, {}).get(state, ())

    def has_state(self, country: str, state: str) -> bool:
        return state in self.states(country)

    def has_city(self, country: str, state: str, city: str) -> bool:
        return city in self.cities(country, state)

    def dial_codes(self) -> tuple[DialCode, ...]:
        return self._dial_codes

    def default_dial_code(self) -> str:
        """First configured dialing code, "+1" when none are configured."""
        return self._dial_codes[0].code if self._dial_codes else "+1"

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-ready copy of the catalog."""
        return {
            "countries": {
                country: {state: list(cities) for state, cities in states.items()}
                for country, states in self._countries.items()
            },
            "dial_codes": [
                {"code": d.code, "country": d.country, "flag": d.flag} for d in self._dial_codes
            ],
        }


@lru_cache
def get_location_catalog() -> LocationCatalog:
    """Get the catalog loaded from the configured reference file.

    Cached like settings; call get_location_catalog.cache_clear() after
    changing LOCATIONS_FILE.
    """
    return LocationCatalog.load(get_settings().locations_file)
