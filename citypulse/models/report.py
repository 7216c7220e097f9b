from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from citypulse.core.enums import ReportStatus, ReportType
from citypulse.models.common import CityPulseBaseModel, LatLng, coerce_lat_lng


class ReportForm(CityPulseBaseModel):
    type: ReportType = ReportType.congestion
    description: str = ""


class Report(CityPulseBaseModel):
    id: Optional[str] = None
    type: ReportType = ReportType.other
    description: str = ""
    position: Optional[LatLng] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # officials move reports along outside this client (confirmed, resolved)
    status: str = ReportStatus.reported.value
    timestamp: Optional[datetime] = None
    reported_by: str = Field("citizen", alias="reportedBy")

    @field_validator("type", mode="before")
    @classmethod
    def unknown_type_is_other(cls, v):
        try:
            return ReportType(v)
        except ValueError:
            return ReportType.other

    @field_validator("position", mode="before")
    @classmethod
    def parse_position(cls, v):
        return coerce_lat_lng(v)

    @field_validator("status", mode="before")
    @classmethod
    def blank_status_is_reported(cls, v):
        return v or ReportStatus.reported.value

    def location(self) -> Optional[LatLng]:
        if self.position:
            return self.position
        return coerce_lat_lng((self.latitude, self.longitude))

    def to_document(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "position": list(self.position) if self.position else None,
            "status": self.status,
            "timestamp": self.timestamp,
            "reportedBy": self.reported_by,
        }
