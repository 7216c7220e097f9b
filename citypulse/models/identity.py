from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from citypulse.models.common import CityPulseBaseModel, LatLng


class Identity(CityPulseBaseModel):
    """Signed-in account. Privilege is never stored here, see AuthorizationPolicy."""

    uid: str
    email: str


class GeolocationOptions(CityPulseBaseModel):
    high_accuracy: bool = True
    timeout: float = 10.0
    maximum_age: float = 60.0


class GeolocationSample(CityPulseBaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_lat_lng(self) -> LatLng:
        return self.latitude, self.longitude

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        taken = self.taken_at
        if taken.tzinfo is None:
            taken = taken.replace(tzinfo=timezone.utc)
        return max((now - taken).total_seconds(), 0.0)
