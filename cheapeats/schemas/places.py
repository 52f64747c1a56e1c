"""
Pydantic schemas for Google Places payloads.

Only the fields the price fetcher reads are typed; everything else the
provider sends is kept through extra="allow" so the raw document can be
stored verbatim in scraped_data.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """A lat/lng pair."""

    model_config = ConfigDict(extra="allow")

    lat: float = 0.0
    lng: float = 0.0


class Geometry(BaseModel):
    model_config = ConfigDict(extra="allow")

    location: Location = Field(default_factory=Location)


class PlaceSummary(BaseModel):
    """One entry of a Nearby Search `results` array."""

    model_config = ConfigDict(extra="allow")

    place_id: str
    name: str = ""
    formatted_address: str = ""
    geometry: Geometry = Field(default_factory=Geometry)
    rating: Optional[float] = None
    price_level: Optional[int] = None   # 0–4 when the provider knows it
    types: list[str] = Field(default_factory=list)


class PlaceDetail(BaseModel):
    """The `result` object of a Place Details response."""

    model_config = ConfigDict(extra="allow")

    place_id: str = ""
    name: str = ""
    formatted_address: str = ""
    formatted_phone_number: str = ""
    website: str = ""
    rating: Optional[float] = None
    price_level: Optional[int] = None
    types: list[str] = Field(default_factory=list)
    geometry: Geometry = Field(default_factory=Geometry)
