from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from citypulse.core.enums import ProjectStatus
from citypulse.models.common import CityPulseBaseModel, LatLng, coerce_lat_lng


class Project(CityPulseBaseModel):
    id: str
    type: str = "other"
    status: ProjectStatus = ProjectStatus.other
    name: Optional[str] = None
    description: Optional[str] = None

    # stored either as a pair or as two flat fields
    position: Optional[LatLng] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("status", mode="before")
    @classmethod
    def unknown_status_is_other(cls, v):
        try:
            return ProjectStatus(v)
        except ValueError:
            return ProjectStatus.other

    @field_validator("position", mode="before")
    @classmethod
    def parse_position(cls, v):
        return coerce_lat_lng(v)

    @field_validator("type", mode="before")
    @classmethod
    def blank_type_is_other(cls, v):
        return v or "other"

    def location(self) -> Optional[LatLng]:
        if self.position:
            return self.position
        return coerce_lat_lng((self.latitude, self.longitude))
