"""Errand planning request schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Anchor, Coordinates, DestinationSpec, StopInput


class CoordinatesModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(self.lat, self.lng)


class DestinationModel(BaseModel):
    name: str = Field(..., min_length=1, description="Address, place name or anchor name.")
    location: Optional[CoordinatesModel] = Field(
        default=None,
        description="Known coordinates; skips destination resolution when provided.",
    )

    def to_domain(self) -> DestinationSpec:
        return DestinationSpec(self.name, self.location.to_domain() if self.location else None)


class StopRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Stop query, e.g. 'Walmart' or 'coffee'.")


class AnchorModel(BaseModel):
    name: str = Field(..., min_length=1)
    location: CoordinatesModel

    def to_domain(self) -> Anchor:
        return Anchor(self.name, self.location.to_domain())


class NavigateRequest(BaseModel):
    origin: CoordinatesModel
    destination: DestinationModel
    stops: List[StopRequest] = Field(default_factory=list)
    anchors: List[AnchorModel] = Field(default_factory=list)
    voice_mode: bool = Field(default=False, description="Return a single route option for voice clients.")


class SuggestRequest(BaseModel):
    origin: CoordinatesModel
    destination: CoordinatesModel
    categories: Optional[List[str]] = Field(default=None, description="Defaults to coffee, gas and grocery.")
    limit: int = Field(default=10, ge=1, le=50)


class ResolvedStopModel(BaseModel):
    place_id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> StopInput:
        return StopInput(self.place_id, Coordinates(self.lat, self.lng))


class RecalculateRequest(BaseModel):
    origin: CoordinatesModel
    destination: CoordinatesModel
    stops: List[ResolvedStopModel] = Field(default_factory=list)


class PreviewRequest(BaseModel):
    origin: CoordinatesModel
    destination: CoordinatesModel
    stops: List[ResolvedStopModel] = Field(default_factory=list)
