from datetime import datetime, timedelta, timezone

import httpx
import pytest

from citypulse.core.errors import LocationError, LocationErrorKind
from citypulse.models.identity import GeolocationOptions, GeolocationSample
from citypulse.services.geolocation import ClientGeolocation, IPGeolocationProvider

OPTIONS = GeolocationOptions(high_accuracy=True, timeout=10, maximum_age=60)
TEMPLATE = "https://geo.example/{ip}/json/"


class TestClientGeolocation:
    @pytest.mark.asyncio
    async def test_no_fix_yet_is_unavailable(self):
        geo = ClientGeolocation()
        assert geo.awaiting_fix
        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == LocationErrorKind.unavailable

    @pytest.mark.asyncio
    async def test_fresh_fix_is_returned(self):
        geo = ClientGeolocation()
        geo.report_position(12.9, 77.5)
        sample = await geo.get_current_position(OPTIONS)
        assert sample.as_lat_lng() == (12.9, 77.5)

    @pytest.mark.asyncio
    async def test_reported_error_wins_until_next_fix(self):
        geo = ClientGeolocation()
        geo.report_position(12.9, 77.5)
        geo.report_error(LocationErrorKind.permission_denied)

        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == LocationErrorKind.permission_denied

        geo.report_position(1.0, 2.0)
        assert (await geo.get_current_position(OPTIONS)).latitude == 1.0

    @pytest.mark.asyncio
    async def test_stale_fix_times_out(self):
        geo = ClientGeolocation()
        sample = geo.report_position(12.9, 77.5)
        sample.taken_at = datetime.now(timezone.utc) - timedelta(seconds=120)

        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == LocationErrorKind.timed_out


def _provider(handler, ip="8.8.8.8"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IPGeolocationProvider(client, TEMPLATE, ip)


class TestIPGeolocation:
    @pytest.mark.asyncio
    async def test_lookup_reads_coordinates(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"latitude": 37.4, "longitude": -122.1})

        geo = _provider(handler)
        sample = await geo.get_current_position(OPTIONS)

        assert sample.as_lat_lng() == (37.4, -122.1)
        assert seen == ["https://geo.example/8.8.8.8/json/"]

        # cached within maximum_age
        await geo.get_current_position(OPTIONS)
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_lat_lon_keys_are_accepted(self):
        geo = _provider(lambda r: httpx.Response(200, json={"lat": 1.5, "lon": 2.5}))
        assert (await geo.get_current_position(OPTIONS)).as_lat_lng() == (1.5, 2.5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ip", [None, "127.0.0.1", "10.0.0.4", "not-an-ip"])
    async def test_private_or_missing_address_is_unavailable(self, ip):
        geo = _provider(lambda r: httpx.Response(200, json={"lat": 1, "lon": 2}), ip=ip)
        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == LocationErrorKind.unavailable

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response,kind",
        [
            (httpx.Response(403), LocationErrorKind.permission_denied),
            (httpx.Response(500), LocationErrorKind.unavailable),
            (httpx.Response(200, json={"error": True}), LocationErrorKind.unavailable),
            (httpx.Response(200, content=b"<html>"), LocationErrorKind.unknown),
            (httpx.Response(200, json={"lat": 200, "lon": 0}), LocationErrorKind.unknown),
        ],
    )
    async def test_bad_responses_are_mapped(self, response, kind):
        geo = _provider(lambda r: response)
        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == kind

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        geo = _provider(handler)
        with pytest.raises(LocationError) as exc:
            await geo.get_current_position(OPTIONS)
        assert exc.value.kind == LocationErrorKind.timed_out


def test_sample_age():
    taken = datetime(2024, 1, 1, tzinfo=timezone.utc)
    sample = GeolocationSample(latitude=0, longitude=0, taken_at=taken)
    assert sample.age_seconds(taken + timedelta(seconds=30)) == 30
