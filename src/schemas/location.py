"""Reference-data schemas for the location and dialing-code endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class DialCodeResponse(BaseModel):
    """A selectable international dialing prefix."""

    model_config = ConfigDict(from_attributes=True)

    code: str = Field(description="Dialing prefix, e.g. '+44'")
    country: str = Field(description="Country or region label")
    flag: str = Field(default="", description="Flag emoji")


class LocationCatalogResponse(BaseModel):
    """Full country → state → city table with dialing codes."""

    countries: dict[str, dict[str, list[str]]] = Field(description="Cities keyed by country then state")
    dial_codes: list[DialCodeResponse] = Field(description="Dialing prefixes in display order")


class OptionsResponse(BaseModel):
    """Options for one level of a cascading selector."""

    parent: str = Field(description="Selected value of the parent level")
    options: list[str] = Field(description="Valid values under the parent")
