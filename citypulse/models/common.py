# citypulse/models/common.py
from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict


LatLng = Tuple[float, float]


def coerce_lat_lng(value: Any) -> Optional[LatLng]:
    """
    Accepts ``[lat, lng]``, ``{"lat", "lng"}`` or ``{"latitude", "longitude"}``.
    Returns None for anything that is not a usable coordinate pair.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("longitude"))
        value = (lat, lng)
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    lat, lng = value
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None
    return float(lat), float(lng)


class CityPulseBaseModel(BaseModel):
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )
