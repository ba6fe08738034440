"""Location reference data routes used by the profile form selectors."""

from fastapi import APIRouter

from src.api.middleware.error_handler import NotFoundError
from src.schemas.location import LocationCatalogResponse, OptionsResponse
from src.services.location_catalog import get_location_catalog

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get(
    "",
    response_model=LocationCatalogResponse,
    summary="Location catalog",
    description="Full country/state/city table plus the dialing codes offered for phone numbers.",
)
async def get_locations() -> LocationCatalogResponse:
    """Return the whole reference table."""
    return LocationCatalogResponse(**get_location_catalog().to_dict())


@router.get(
    "/{country}/states",
    response_model=OptionsResponse,
    summary="States of a country",
)
async def get_states(country: str) -> OptionsResponse:
    """List the states of a country.

    Raises:
        NotFoundError: 404 for a country not in the catalog.
    """
    states = get_location_catalog().states(country)
    if not states:
        raise NotFoundError(f"Unknown country: {country}")
    return OptionsResponse(parent=country, options=list(states))


@router.get(
    "/{country}/states/{state}/cities",
    response_model=OptionsResponse,
    summary="Cities of a state",
)
async def get_cities(country: str, state: str) -> OptionsResponse:
    """List the cities of a state within a country.

    Raises:
        NotFoundError: 404 when the country/state pair is not in the catalog.
    """
    cities = get_location_catalog().cities(country, state)
    if not cities:
        raise NotFoundError(f"Unknown state {state!r} for country {country!r}")
    return OptionsResponse(parent=state, options=list(cities))
