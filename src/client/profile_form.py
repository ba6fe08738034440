"""Profile form controller.

Holds the editable state behind the profile dashboard form and drives the
profile API. The controller is a small state machine::

    LOADING -> NO_PROFILE   no profile yet, editing is forced
    LOADING -> VIEW         profile found
    VIEW    -> EDIT         start_editing()
    EDIT    -> VIEW         successful submit() or cancel()

Country, state and city behave as cascading selectors backed by a
LocationCatalog. Every load and submit takes a request generation; a
response that arrives after a newer request was started is dropped.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from src.client.profile_api import ProfileApiClient, ProfileApiError
from src.services.location_catalog import LocationCatalog

logger = logging.getLogger(__name__)

CONTACT_PARTS_PATTERN = re.compile(r"^(\+[0-9]+)\s*(.+)$")
PHONE_DIGITS_PATTERN = re.compile(r"^[0-9]{7,15}$")


class FormMode(str, Enum):
    """Controller states."""

    LOADING = "loading"
    NO_PROFILE = "no_profile"
    VIEW = "view"
    EDIT = "edit"


class FormStateError(Exception):
    """An action was requested in a mode that does not allow it."""


@dataclass(frozen=True)
class Notice:
    """Transient message for the user."""

    level: str
    message: str


def derive_age(dob: str, today: date) -> int | None:
    """Whole years between ``dob`` and ``today``.

    One year is taken off when this year's birthday has not happened yet.
    Unparseable dates and birth dates in the future give None.
    """
    try:
        born = date.fromisoformat(dob)
    except ValueError:
        return None

    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age if age >= 0 else None


class ProfileFormController:
    """State machine behind the profile form."""

    def __init__(
        self,
        api: ProfileApiClient,
        catalog: LocationCatalog,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.api = api
        self.catalog = catalog
        self._today = today

        self.mode = FormMode.LOADING
        self.profile: dict[str, Any] = {}
        self.has_profile = False
        self.notices: list[Notice] = []

        self.dob = ""
        self.calculated_age: int | None = None
        self.address = ""
        self.country = ""
        self.state = ""
        self.city = ""
        self.available_states: tuple[str, ...] = ()
        self.available_cities: tuple[str, ...] = ()
        self.dial_code = catalog.default_dial_code()
        self.phone_number = ""

        self._generation = 0
        self._saves_in_flight = 0

    @property
    def is_editing(self) -> bool:
        return self.mode in (FormMode.NO_PROFILE, FormMode.EDIT)

    @property
    def is_saving(self) -> bool:
        return self._saves_in_flight > 0

    @property
    def last_notice(self) -> Notice | None:
        return self.notices[-1] if self.notices else None

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Dropping stale response for generation %d", generation)
            return False
        return True

    # Loading

    async def load(self) -> None:
        """Fetch the profile and settle into NO_PROFILE or VIEW."""
        generation = self._next_generation()
        self.mode = FormMode.LOADING

        try:
            data = await self.api.get_profile()
        except ProfileApiError as e:
            if not self._is_current(generation):
                return
            logger.error("Error fetching profile: %s", e.message)
            self.profile = {}
            self.has_profile = False
            self.mode = FormMode.VIEW
            self._notify("error", "Failed to load profile data")
            return

        if not self._is_current(generation):
            return

        if data is None:
            # First-time users have to fill the form in
            self.profile = {}
            self.has_profile = False
            self._apply_profile({})
            self.mode = FormMode.NO_PROFILE
            return

        self.profile = data
        self.has_profile = True
        self._apply_profile(data)
        self.mode = FormMode.VIEW

    def _apply_profile(self, data: dict[str, Any]) -> None:
        """Replace every editable field with the values from ``data``."""
        self.set_dob(data.get("dob") or "")
        self.address = data.get("address") or ""

        # Country first so state and city are checked against the right parent
        country = data.get("country") or ""
        state = data.get("state") or ""
        city = data.get("city") or ""
        self.country = country
        self.available_states = self.catalog.states(country)
        self.state = state if self.catalog.has_state(country, state) else ""
        self.available_cities = self.catalog.cities(country, self.state) if self.state else ()
        self.city = city if self.catalog.has_city(country, self.state, city) else ""

        contact = data.get("contact") or ""
        match = CONTACT_PARTS_PATTERN.match(contact)
        if match:
            self.dial_code, self.phone_number = match.group(1), match.group(2)
        else:
            self.dial_code = self.catalog.default_dial_code()
            self.phone_number = contact

    # Mode transitions

    def start_editing(self) -> None:
        """VIEW -> EDIT, resetting fields to the last fetched profile."""
        if self.mode != FormMode.VIEW:
            raise FormStateError(f"Cannot start editing from {self.mode.value}")
        self._apply_profile(self.profile)
        self.mode = FormMode.EDIT

    async def cancel(self) -> None:
        """EDIT -> VIEW, discarding edits by re-fetching the profile."""
        if self.mode != FormMode.EDIT:
            raise FormStateError(f"Cannot cancel from {self.mode.value}")
        await self.load()

    # Field updates

    def set_dob(self, value: str) -> None:
        self.dob = value
        self.calculated_age = derive_age(value, self._today()) if value else None

    def set_address(self, value: str) -> None:
        self.address = value

    def set_dial_code(self, code: str) -> None:
        self.dial_code = code

    def set_phone_number(self, value: str) -> None:
        """Keep only the digits of ``value``."""
        self.phone_number = re.sub(r"[^0-9]", "", value)

    def select_country(self, country: str) -> None:
        """Select a country and refresh the state options.

        The selected state (and with it the city) is cleared only when it
        is not a state of the new country.
        """
        if country and country not in self.catalog.countries():
            raise ValueError(f"Unknown country: {country}")

        self.country = country
        self.available_states = self.catalog.states(country)
        if self.state and self.state not in self.available_states:
            self.state = ""
        self._refresh_cities()

    def select_state(self, state: str) -> None:
        """Select a state and refresh the city options."""
        if state and not self.catalog.has_state(self.country, state):
            raise ValueError(f"Unknown state {state!r} for country {self.country!r}")

        self.state = state
        self._refresh_cities()

    def select_city(self, city: str) -> None:
        if city and not self.catalog.has_city(self.country, self.state, city):
            raise ValueError(f"Unknown city {city!r} for state {self.state!r}")
        self.city = city

    def _refresh_cities(self) -> None:
        self.available_cities = self.catalog.cities(self.country, self.state) if self.state else ()
        if self.city and self.city not in self.available_cities:
            self.city = ""

    # Submission

    def build_payload(self) -> dict[str, Any]:
        """Assemble the PUT body from the current fields (blank -> None)."""
        return {
            "age": self.calculated_age,
            "dob": self.dob or None,
            "contact": f"{self.dial_code} {self.phone_number}" if self.phone_number else None,
            "address": self.address or None,
            "city": self.city or None,
            "state": self.state or None,
            "country": self.country or None,
        }

    async def submit(self) -> bool:
        """Save the form.

        On success the controller moves to VIEW with the stored profile.
        On failure the error is surfaced as a notice and the mode and all
        field values stay as they were, ready for a retry.

        Returns:
            bool: True when the profile was saved.
        """
        if not self.is_editing:
            raise FormStateError(f"Cannot submit from {self.mode.value}")

        if self.phone_number and not PHONE_DIGITS_PATTERN.match(re.sub(r"[\s-]", "", self.phone_number)):
            self._notify("error", "Please enter a valid phone number (7-15 digits)")
            return False

        generation = self._next_generation()
        self._saves_in_flight += 1
        try:
            updated = await self.api.save_profile(self.build_payload())
        except ProfileApiError as e:
            if self._is_current(generation):
                logger.error("Error updating profile: %s", e.message)
                self._notify("error", e.message or "Failed to update profile")
            return False
        finally:
            self._saves_in_flight -= 1

        if not self._is_current(generation):
            return False

        self.profile = updated
        self.has_profile = True
        self._apply_profile(updated)
        self.mode = FormMode.VIEW
        self._notify("success", "Profile updated successfully!")
        return True
