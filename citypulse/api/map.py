import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response

from citypulse.api.deps import get_services, get_session
from citypulse.mapper.state_mapper import to_map_out
from citypulse.schemas.map import MapOut
from citypulse.services.container import Services
from citypulse.services.map_adapter import build_markers, to_geojson
from citypulse.services.sessions import ClientSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/map", tags=["Map"])

TILE_PROXY_URL = "/map/tiles/{z}/{x}/{y}.png"


@router.get("", response_model=MapOut)
async def map_view(session: ClientSession = Depends(get_session)):
    return to_map_out(session, TILE_PROXY_URL)


@router.get("/markers.geojson")
async def markers_geojson(session: ClientSession = Depends(get_session)):
    vm = session.reporting
    return to_geojson(build_markers(vm.projects, vm.reports, vm.location))


@router.put("/selection/{key}", response_model=MapOut)
async def select_marker(key: str, session: ClientSession = Depends(get_session)):
    vm = session.reporting
    if session.selection.select(key, vm.projects, vm.reports) is None:
        raise HTTPException(status_code=404, detail="Marker not found")
    return to_map_out(session, TILE_PROXY_URL)


@router.delete("/selection", response_model=MapOut)
async def clear_selection(session: ClientSession = Depends(get_session)):
    session.selection.clear()
    return to_map_out(session, TILE_PROXY_URL)


@router.get("/tiles/{z}/{x}/{y}.png")
async def osm_tile(z: int, x: int, y: int, services: Services = Depends(get_services)):
    url = services.settings.tile_url.format(z=z, x=x, y=y)
    try:
        r = await services.http.get(url, timeout=10.0)
    except httpx.HTTPError as exc:
        logger.warning("Tile fetch %s failed: %s", url, exc)
        raise HTTPException(status_code=502, detail="Tile proxy error") from exc

    if r.status_code != 200:
        raise HTTPException(status_code=502, detail="Tile fetch failed")
    return Response(
        content=r.content,
        media_type="image/png",
        headers={
            "Cache-Control": "public, max-age=86400",
        },
    )
