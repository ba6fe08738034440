"""Unit tests for the profile form controller."""

import asyncio
from datetime import date
from typing import Any
from unittest.mock import patch

import pytest

from src.client.profile_api import ProfileApiError
from src.client.profile_form import (
    FormMode,
    FormStateError,
    ProfileFormController,
    derive_age,
)
from src.services.location_catalog import DialCode, LocationCatalog

TODAY = date(2024, 6, 10)

CATALOG = LocationCatalog(
    {
        "India": {
            "Karnataka": ["Bangalore", "Mysore"],
            "Maharashtra": ["Mumbai", "Pune"],
        },
        "Canada": {
            "Ontario": ["Toronto", "Ottawa"],
            "British Columbia": ["Vancouver", "Victoria"],
        },
        "Australia": {
            "Victoria": ["Melbourne", "Geelong"],
        },
    },
    [DialCode(code="+1", country="US/Canada"), DialCode(code="+91", country="India")],
)

STORED = {
    "id": "550e8400-e29b-41d4-a716-446655440000",
    "user_id": "660e8400-e29b-41d4-a716-446655440000",
    "age": 23,
    "dob": "2000-06-15",
    "contact": "+91 9876543210",
    "address": "12 MG Road",
    "city": "Bangalore",
    "state": "Karnataka",
    "country": "India",
    "created_at": "2024-01-01T00:00:00+00:00",
    "updated_at": "2024-01-01T00:00:00+00:00",
}


class FakeProfileApi:
    """Scriptable stand-in for ProfileApiClient."""

    def __init__(self, profile: dict[str, Any] | None = None) -> None:
        self.profile = profile
        self.fetch_error: ProfileApiError | None = None
        self.save_error: ProfileApiError | None = None
        self.saved: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def get_profile(self) -> dict[str, Any] | None:
        if self.fetch_error:
            raise self.fetch_error
        return dict(self.profile) if self.profile else None

    async def save_profile(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.saved.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.save_error:
            raise self.save_error
        self.profile = {**(self.profile or STORED), **payload}
        return dict(self.profile)


class SequencedProfileApi:
    """Profile API whose fetches complete only when resolved, in any order."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future] = []

    async def get_profile(self) -> dict[str, Any] | None:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    async def save_profile(self, payload: dict[str, Any]) -> dict[str, Any]:
        raise AssertionError("not used")

    def resolve(self, index: int, profile: dict[str, Any] | None) -> None:
        self.pending[index].set_result(dict(profile) if profile else None)


def make_controller(api: Any, today: date = TODAY) -> ProfileFormController:
    return ProfileFormController(api, CATALOG, today=lambda: today)


class TestDeriveAge:
    """Tests for derive_age."""

    def test_birthday_not_reached_yet(self) -> None:
        assert derive_age("2000-06-15", date(2024, 6, 10)) == 23

    def test_birthday_passed(self) -> None:
        assert derive_age("2000-06-15", date(2024, 6, 20)) == 24

    def test_on_birthday(self) -> None:
        assert derive_age("2000-06-15", date(2024, 6, 15)) == 24

    def test_earlier_month_same_day(self) -> None:
        assert derive_age("2000-12-01", date(2024, 1, 1)) == 23

    def test_future_date_is_unset(self) -> None:
        assert derive_age("2030-01-01", date(2024, 6, 10)) is None

    def test_unparseable_date_is_unset(self) -> None:
        assert derive_age("not-a-date", date(2024, 6, 10)) is None


class TestLoad:
    """Tests for the initial load."""

    @pytest.mark.asyncio
    async def test_missing_profile_forces_editing(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        assert controller.mode == FormMode.LOADING

        await controller.load()

        assert controller.mode == FormMode.NO_PROFILE
        assert controller.is_editing
        assert controller.has_profile is False

    @pytest.mark.asyncio
    async def test_found_profile_shows_view_with_fields(self) -> None:
        controller = make_controller(FakeProfileApi(profile=STORED))

        await controller.load()

        assert controller.mode == FormMode.VIEW
        assert not controller.is_editing
        assert controller.country == "India"
        assert controller.state == "Karnataka"
        assert controller.city == "Bangalore"
        assert controller.available_states == ("Karnataka", "Maharashtra")
        assert controller.available_cities == ("Bangalore", "Mysore")
        assert controller.dial_code == "+91"
        assert controller.phone_number == "9876543210"
        assert controller.calculated_age == 23

    @pytest.mark.asyncio
    async def test_stored_values_outside_catalog_are_dropped(self) -> None:
        stored = {**STORED, "state": "Ontario", "city": "Toronto"}
        controller = make_controller(FakeProfileApi(profile=stored))

        await controller.load()

        assert controller.country == "India"
        assert controller.state == ""
        assert controller.city == ""

    @pytest.mark.asyncio
    async def test_contact_without_prefix_kept_as_number(self) -> None:
        controller = make_controller(FakeProfileApi(profile={**STORED, "contact": "9876543210"}))

        await controller.load()

        assert controller.dial_code == "+1"
        assert controller.phone_number == "9876543210"

    @pytest.mark.asyncio
    async def test_fetch_failure_surfaces_notice(self) -> None:
        api = FakeProfileApi(profile=STORED)
        api.fetch_error = ProfileApiError("boom", status_code=500)
        controller = make_controller(api)

        await controller.load()

        assert controller.mode == FormMode.VIEW
        assert controller.has_profile is False
        assert controller.last_notice.level == "error"
        assert controller.last_notice.message == "Failed to load profile data"

    @pytest.mark.asyncio
    async def test_late_response_from_earlier_load_is_dropped(self) -> None:
        api = SequencedProfileApi()
        controller = make_controller(api)

        first = asyncio.create_task(controller.load())
        await asyncio.sleep(0)
        second = asyncio.create_task(controller.load())
        await asyncio.sleep(0)

        # Newer load answers first, the older one afterwards with outdated data
        api.resolve(1, {**STORED, "city": "Mysore"})
        await second
        api.resolve(0, STORED)
        await first

        assert controller.mode == FormMode.VIEW
        assert controller.city == "Mysore"
        assert controller.profile["city"] == "Mysore"


class TestCascadingSelectors:
    """Tests for the country/state/city selectors."""

    @pytest.mark.asyncio
    async def test_india_karnataka_then_canada_clears_state_and_city(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        await controller.load()

        controller.select_country("India")
        assert "Karnataka" in controller.available_states

        controller.select_state("Karnataka")
        assert "Bangalore" in controller.available_cities

        controller.select_city("Bangalore")
        controller.select_country("Canada")

        assert controller.state == ""
        assert controller.city == ""
        assert controller.available_states == ("Ontario", "British Columbia")
        assert controller.available_cities == ()

    @pytest.mark.asyncio
    async def test_still_valid_state_survives_country_change(self) -> None:
        catalog = LocationCatalog(
            {
                "Canada": {"Victoria": ["Victoria City"], "Ontario": ["Toronto"]},
                "Australia": {"Victoria": ["Melbourne"]},
            }
        )
        controller = ProfileFormController(FakeProfileApi(), catalog, today=lambda: TODAY)
        await controller.load()

        controller.select_country("Canada")
        controller.select_state("Victoria")
        controller.select_country("Australia")

        assert controller.state == "Victoria"
        assert controller.available_cities == ("Melbourne",)

    @pytest.mark.asyncio
    async def test_still_valid_city_survives_state_reselect(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        await controller.load()

        controller.select_country("India")
        controller.select_state("Karnataka")
        controller.select_city("Mysore")
        controller.select_state("Karnataka")

        assert controller.city == "Mysore"

    @pytest.mark.asyncio
    async def test_changing_state_clears_invalid_city(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        await controller.load()

        controller.select_country("India")
        controller.select_state("Karnataka")
        controller.select_city("Bangalore")
        controller.select_state("Maharashtra")

        assert controller.city == ""
        assert controller.available_cities == ("Mumbai", "Pune")

    @pytest.mark.asyncio
    async def test_clearing_country_clears_everything_below(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        await controller.load()

        controller.select_country("India")
        controller.select_state("Karnataka")
        controller.select_city("Bangalore")
        controller.select_country("")

        assert (controller.state, controller.city) == ("", "")
        assert controller.available_states == ()
        assert controller.available_cities == ()

    def test_unknown_options_are_rejected(self) -> None:
        controller = make_controller(FakeProfileApi())

        with pytest.raises(ValueError):
            controller.select_country("Atlantis")
        controller.select_country("India")
        with pytest.raises(ValueError):
            controller.select_state("Ontario")
        with pytest.raises(ValueError):
            controller.select_city("Toronto")


class TestFieldUpdates:
    """Tests for derived and normalized fields."""

    def test_dob_change_recomputes_age(self) -> None:
        controller = make_controller(FakeProfileApi(), today=date(2024, 6, 20))

        controller.set_dob("2000-06-15")
        assert controller.calculated_age == 24

        controller.set_dob("2030-01-01")
        assert controller.calculated_age is None

        controller.set_dob("")
        assert controller.calculated_age is None

    def test_phone_number_keeps_digits_only(self) -> None:
        controller = make_controller(FakeProfileApi())

        controller.set_phone_number("(415) 555-1234")

        assert controller.phone_number == "4155551234"


class TestModeTransitions:
    """Tests for edit/view transitions."""

    @pytest.mark.asyncio
    async def test_start_editing_discards_local_drift(self) -> None:
        controller = make_controller(FakeProfileApi(profile=STORED))
        await controller.load()
        controller.address = "drifted"

        controller.start_editing()

        assert controller.mode == FormMode.EDIT
        assert controller.address == "12 MG Road"

    @pytest.mark.asyncio
    async def test_start_editing_only_from_view(self) -> None:
        controller = make_controller(FakeProfileApi(profile=None))
        await controller.load()

        with pytest.raises(FormStateError):
            controller.start_editing()

    @pytest.mark.asyncio
    async def test_cancel_refetches_and_returns_to_view(self) -> None:
        controller = make_controller(FakeProfileApi(profile=STORED))
        await controller.load()
        controller.start_editing()
        controller.select_country("Canada")
        controller.set_address("somewhere else")

        await controller.cancel()

        assert controller.mode == FormMode.VIEW
        assert controller.country == "India"
        assert controller.state == "Karnataka"
        assert controller.address == "12 MG Road"

    @pytest.mark.asyncio
    async def test_cancel_requires_edit_mode(self) -> None:
        controller = make_controller(FakeProfileApi(profile=STORED))
        await controller.load()

        with pytest.raises(FormStateError):
            await controller.cancel()


class TestSubmit:
    """Tests for submitting the form."""

    @pytest.mark.asyncio
    async def test_first_submit_assembles_payload_and_shows_view(self) -> None:
        api = FakeProfileApi(profile=None)
        controller = make_controller(api)
        await controller.load()

        controller.set_dob("2000-06-15")
        controller.select_country("India")
        controller.select_state("Karnataka")
        controller.select_city("Bangalore")
        controller.set_dial_code("+91")
        controller.set_phone_number("9876543210")

        assert await controller.submit() is True

        assert api.saved == [
            {
                "age": 23,
                "dob": "2000-06-15",
                "contact": "+91 9876543210",
                "address": None,
                "city": "Bangalore",
                "state": "Karnataka",
                "country": "India",
            }
        ]
        assert controller.mode == FormMode.VIEW
        assert controller.has_profile is True
        assert controller.last_notice.level == "success"

    @pytest.mark.asyncio
    async def test_blank_phone_sends_null_contact(self) -> None:
        api = FakeProfileApi(profile=None)
        controller = make_controller(api)
        await controller.load()

        await controller.submit()

        assert api.saved[0]["contact"] is None
        assert api.saved[0]["age"] is None

    @pytest.mark.asyncio
    async def test_short_phone_number_blocks_request(self) -> None:
        api = FakeProfileApi(profile=None)
        controller = make_controller(api)
        await controller.load()
        controller.set_phone_number("12345")

        assert await controller.submit() is False

        assert api.saved == []
        assert controller.mode == FormMode.NO_PROFILE
        assert controller.last_notice.message == "Please enter a valid phone number (7-15 digits)"

    @pytest.mark.asyncio
    async def test_server_rejection_keeps_mode_and_fields(self) -> None:
        api = FakeProfileApi(profile=STORED)
        controller = make_controller(api)
        await controller.load()
        controller.start_editing()
        controller.set_address("221B Baker Street")
        api.save_error = ProfileApiError("Invalid phone format", status_code=400, code="INVALID_CONTACT")

        assert await controller.submit() is False

        assert controller.mode == FormMode.EDIT
        assert controller.address == "221B Baker Street"
        assert controller.last_notice.level == "error"
        assert controller.last_notice.message == "Invalid phone format"
        assert not controller.is_saving

    @pytest.mark.asyncio
    async def test_submit_not_allowed_in_view(self) -> None:
        controller = make_controller(FakeProfileApi(profile=STORED))
        await controller.load()

        with pytest.raises(FormStateError):
            await controller.submit()

    @pytest.mark.asyncio
    async def test_stale_submit_response_is_dropped(self) -> None:
        api = FakeProfileApi(profile=STORED)
        controller = make_controller(api)
        await controller.load()
        controller.start_editing()
        controller.set_address("pending change")

        api.gate = asyncio.Event()
        pending = asyncio.create_task(controller.submit())
        await asyncio.sleep(0)
        assert controller.is_saving

        # User cancels while the save is still in flight
        api.gate.set()
        api.profile = dict(STORED)
        await controller.cancel()
        saved = await pending

        assert saved is False
        assert controller.mode == FormMode.VIEW
        assert controller.address == "12 MG Road"
        assert not controller.is_saving

    @pytest.mark.asyncio
    async def test_non_ascii_digits_block_request(self) -> None:
        api = FakeProfileApi(profile={**STORED, "contact": "٩٨٧٦٥٤٣٢١٠"})
        controller = make_controller(api)
        await controller.load()
        controller.start_editing()

        assert await controller.submit() is False

        assert api.saved == []
        assert controller.mode == FormMode.EDIT
        assert controller.last_notice.message == "Please enter a valid phone number (7-15 digits)"

    @pytest.mark.asyncio
    async def test_non_ascii_dial_prefix_not_split(self) -> None:
        controller = make_controller(FakeProfileApi(profile={**STORED, "contact": "+٩١ 9876543210"}))

        await controller.load()

        assert controller.dial_code == "+1"
        assert controller.phone_number == "+٩١ 9876543210"


class TestCatalogMembership:
    """Selections are checked against the location catalog."""

    def test_state_and_city_checked_through_catalog(self) -> None:
        controller = make_controller(FakeProfileApi())
        controller.select_country("India")

        with (
            patch.object(CATALOG, "has_state", wraps=CATALOG.has_state) as has_state,
            patch.object(CATALOG, "has_city", wraps=CATALOG.has_city) as has_city,
        ):
            controller.select_state("Karnataka")
            controller.select_city("Mysore")

        has_state.assert_called_with("India", "Karnataka")
        has_city.assert_called_with("India", "Karnataka", "Mysore")
        assert (controller.state, controller.city) == ("Karnataka", "Mysore")
