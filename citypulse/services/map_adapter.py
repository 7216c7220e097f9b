from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from citypulse.core.enums import MarkerKind
from citypulse.models.common import LatLng
from citypulse.models.identity import GeolocationSample
from citypulse.models.project import Project
from citypulse.models.report import Report

TILE_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
)
USER_LOCATION_COLOR = "#4285F8"

MARKER_COLORS = {
    "completed": "green",
    "resolved": "green",
    "ongoing": "orange",
    "confirmed": "orange",
    "planned": "blue",
}
POPUP_STATUS_COLORS = {
    "completed": "green",
    "resolved": "green",
    "ongoing": "orange",
    "confirmed": "orange",
}

LEGEND = [
    {"label": "Ongoing Projects", "color": "orange"},
    {"label": "Planned Projects", "color": "blue"},
    {"label": "Issues & Reports", "color": "red"},
    {"label": "Your Location", "color": USER_LOCATION_COLOR},
]

Entity = Union[Project, Report]


def _value(v: Any) -> str:
    return str(getattr(v, "value", v) or "")


def marker_color(status: Any) -> str:
    return MARKER_COLORS.get(_value(status), "red")


def popup_status_color(status: Any) -> str:
    return POPUP_STATUS_COLORS.get(_value(status), "blue")


def marker_label(type_: Any) -> str:
    text = _value(type_)
    return text[:1].upper()


@dataclass
class Marker:
    key: str
    kind: MarkerKind
    position: LatLng
    color: str
    label: str
    entity_id: Optional[str] = None


@dataclass
class Popup:
    key: str
    position: LatLng
    title: str
    description: Optional[str]
    type: str
    status: Optional[str]
    status_color: Optional[str]
    timestamp: Optional[datetime]


def marker_key(kind: MarkerKind, entity_id: Optional[str] = None) -> str:
    if kind == MarkerKind.user:
        return "user"
    return f"{kind.value}-{entity_id}"


def _entity_marker(kind: MarkerKind, entity: Entity) -> Optional[Marker]:
    position = entity.location()
    if position is None:
        return None
    return Marker(
        key=marker_key(kind, entity.id),
        kind=kind,
        position=position,
        color=marker_color(entity.status),
        label=marker_label(entity.type),
        entity_id=entity.id,
    )


def build_markers(
    projects: Iterable[Project],
    reports: Iterable[Report],
    user_location: Optional[GeolocationSample] = None,
) -> List[Marker]:
    markers: List[Marker] = []
    if user_location is not None:
        markers.append(
            Marker(
                key=marker_key(MarkerKind.user),
                kind=MarkerKind.user,
                position=user_location.as_lat_lng(),
                color=USER_LOCATION_COLOR,
                label="",
            )
        )
    for project in projects:
        m = _entity_marker(MarkerKind.project, project)
        if m:
            markers.append(m)
    for report in reports:
        m = _entity_marker(MarkerKind.report, report)
        if m:
            markers.append(m)
    return markers


def to_geojson(markers: Iterable[Marker]) -> Dict[str, Any]:
    features = []
    for m in markers:
        lat, lng = m.position
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lng, lat]},
                "properties": {
                    "key": m.key,
                    "kind": m.kind.value,
                    "color": m.color,
                    "label": m.label,
                    "id": m.entity_id,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def build_popup(key: str, entity: Entity) -> Popup:
    position = entity.location()
    title = getattr(entity, "name", None) or f"Report #{entity.id}"
    status = _value(entity.status) or None
    return Popup(
        key=key,
        position=position,
        title=title,
        description=entity.description,
        type=_value(entity.type),
        status=status,
        status_color=popup_status_color(status) if status else None,
        timestamp=getattr(entity, "timestamp", None),
    )


class MapView:
    """Handle to the rendered map; whoever needs to recenter gets one injected."""

    def set_view(self, center: LatLng, zoom: int) -> None:
        raise NotImplementedError


class MapViewport(MapView):
    def __init__(self, center: LatLng, zoom: int):
        self.center = center
        self.zoom = zoom

    def set_view(self, center: LatLng, zoom: int) -> None:
        self.center = center
        self.zoom = zoom


class MarkerSelection:
    def __init__(self):
        self.popup: Optional[Popup] = None

    def select(self, key: str, projects: Iterable[Project], reports: Iterable[Report]) -> Optional[Popup]:
        kind, _, entity_id = key.partition("-")
        pool: Iterable[Entity] = ()
        if kind == MarkerKind.project.value:
            pool = projects
        elif kind == MarkerKind.report.value:
            pool = reports

        for entity in pool:
            if entity.id == entity_id and entity.location() is not None:
                self.popup = build_popup(key, entity)
                return self.popup
        return None

    def clear(self) -> None:
        self.popup = None

    def sync(self, projects: Iterable[Project], reports: Iterable[Report]) -> None:
        """Re-derive the open popup from the latest snapshot; close it if the entity is gone."""
        if self.popup is None:
            return
        if self.select(self.popup.key, projects, reports) is None:
            self.popup = None
