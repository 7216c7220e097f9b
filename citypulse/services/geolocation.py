"""
Geolocation providers.

The browser owns the real position; ``ClientGeolocation`` holds the last fix
(or failure) it reported. ``IPGeolocationProvider`` is a coarse fallback that
looks the caller's address up over HTTP.
"""
from __future__ import annotations

import ipaddress
import logging
from typing import Optional

import httpx

from citypulse.core.errors import LocationError, LocationErrorKind
from citypulse.models.identity import GeolocationOptions, GeolocationSample

logger = logging.getLogger(__name__)


class GeolocationProvider:
    @property
    def awaiting_fix(self) -> bool:
        """True while the position has been asked for but nothing has come back yet."""
        return False

    async def get_current_position(self, options: GeolocationOptions) -> GeolocationSample:
        raise NotImplementedError


class ClientGeolocation(GeolocationProvider):
    def __init__(self):
        self._sample: Optional[GeolocationSample] = None
        self._error: Optional[LocationErrorKind] = None

    def report_position(self, latitude: float, longitude: float) -> GeolocationSample:
        self._sample = GeolocationSample(latitude=latitude, longitude=longitude)
        self._error = None
        return self._sample

    def report_error(self, kind: LocationErrorKind) -> None:
        self._error = kind

    @property
    def awaiting_fix(self) -> bool:
        return self._sample is None and self._error is None

    async def get_current_position(self, options: GeolocationOptions) -> GeolocationSample:
        if self._error is not None:
            raise LocationError(self._error)
        if self._sample is None:
            raise LocationError(LocationErrorKind.unavailable)
        if self._sample.age_seconds() > options.maximum_age:
            # no fresh fix arrived inside the cache window
            raise LocationError(LocationErrorKind.timed_out)
        return self._sample


class IPGeolocationProvider(GeolocationProvider):
    """
    Looks up ``url_template.format(ip=...)`` and reads ``latitude``/``longitude``
    (or ``lat``/``lon``) from the JSON body. High accuracy is not available
    this way and the option is ignored.
    """

    def __init__(self, client: httpx.AsyncClient, url_template: str, ip: Optional[str] = None):
        self.client = client
        self.url_template = url_template
        self.ip = ip
        self._cached: Optional[GeolocationSample] = None

    def _public_ip(self) -> Optional[str]:
        if not self.ip:
            return None
        try:
            addr = ipaddress.ip_address(self.ip)
        except ValueError:
            return None
        return self.ip if addr.is_global else None

    async def get_current_position(self, options: GeolocationOptions) -> GeolocationSample:
        if self._cached is not None and self._cached.age_seconds() <= options.maximum_age:
            return self._cached

        ip = self._public_ip()
        if ip is None:
            raise LocationError(LocationErrorKind.unavailable)

        url = self.url_template.format(ip=ip)
        try:
            r = await self.client.get(url, timeout=options.timeout)
        except httpx.TimeoutException as exc:
            raise LocationError(LocationErrorKind.timed_out) from exc
        except httpx.HTTPError as exc:
            logger.warning("IP geolocation lookup failed: %s", exc)
            raise LocationError(LocationErrorKind.unavailable) from exc

        if r.status_code in (401, 403):
            raise LocationError(LocationErrorKind.permission_denied)
        if r.status_code != 200:
            raise LocationError(LocationErrorKind.unavailable)

        try:
            data = r.json()
        except ValueError as exc:
            raise LocationError(LocationErrorKind.unknown) from exc

        lat = data.get("latitude", data.get("lat"))
        lng = data.get("longitude", data.get("lon"))
        if lat is None or lng is None:
            raise LocationError(LocationErrorKind.unavailable)

        try:
            self._cached = GeolocationSample(latitude=lat, longitude=lng)
        except ValueError as exc:
            raise LocationError(LocationErrorKind.unknown) from exc
        return self._cached
