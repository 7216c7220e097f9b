from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel

from citypulse.core.enums import MarkerKind


class MarkerOut(BaseModel):
    key: str
    kind: MarkerKind
    position: Tuple[float, float]
    color: str
    label: str
    entity_id: Optional[str] = None


class PopupOut(BaseModel):
    key: str
    position: Tuple[float, float]
    title: str
    description: Optional[str] = None
    type: str
    status: Optional[str] = None
    status_color: Optional[str] = None
    timestamp: Optional[datetime] = None


class LegendEntry(BaseModel):
    label: str
    color: str


class MapOut(BaseModel):
    center: Tuple[float, float]
    zoom: int
    tile_url: str
    attribution: str
    markers: List[MarkerOut]
    legend: List[LegendEntry]
    selected: Optional[PopupOut] = None
