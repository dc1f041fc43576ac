"""Tests for the GPX codec."""

import io
from datetime import datetime, timezone

import pytest

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.gpx import Gpx11Format
from waypost.model import Position, Route, RouteCharacteristics


def _read(text: str) -> ParseContext:
    data = text.encode("utf-8")
    stream = RewindableStream(io.BytesIO(data))
    stream.mark(len(data) + 1)
    context = ParseContext()
    Gpx11Format().read(stream, context)
    return context


def _write(route: Route) -> str:
    out = io.BytesIO()
    Gpx11Format().write(route, out, 0, route.position_count)
    return out.getvalue().decode("utf-8")


GPX_11 = """<?xml version="1.0" encoding="UTF-8"?>
<gpx xmlns="http://www.topografix.com/GPX/1/1" version="1.1" creator="test">
  <metadata><name>Weekend</name></metadata>
  <wpt lat="46.1" lon="-114.1"><name>Camp &amp;apos;A&amp;apos;</name></wpt>
  <wpt lat="46.2" lon="-114.2"><desc>Spring</desc></wpt>
  <rte>
    <name>Approach</name>
    <rtept lat="46.3" lon="-114.3"/>
    <rtept lat="46.4" lon="-114.4"/>
  </rte>
  <trk>
    <name>Summit</name>
    <desc>Line one</desc>
    <trkseg>
      <trkpt lat="46.5" lon="-114.5"><ele>2000.5</ele><time>2024-07-01T06:00:00Z</time></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="46.6" lon="-114.6"><time>2024-07-01T06:10:00.250Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""

GPX_10 = """<?xml version="1.0"?>
<gpx version="1.0" creator="old" xmlns="http://www.topografix.com/GPX/1/0">
  <name>Old file</name>
  <wpt lat="10.0" lon="20.0"><name>Only</name></wpt>
</gpx>
"""


def test_reads_waypoints_routes_and_tracks():
    routes = _read(GPX_11).routes
    assert [r.characteristics for r in routes] == [
        RouteCharacteristics.Waypoints,
        RouteCharacteristics.Route,
        RouteCharacteristics.Track,
    ]
    waypoints, approach, summit = routes
    assert waypoints.name == "Weekend"
    assert [p.description for p in waypoints.positions] == ["Camp 'A'", "Spring"]
    assert approach.name == "Approach"
    assert approach.position_count == 2
    assert summit.position_count == 2
    assert summit.description == ["Line one"]
    assert summit.positions[0].elevation == 2000.5
    assert summit.positions[0].time == datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)
    assert summit.positions[1].time.microsecond == 250000


def test_reads_gpx_10():
    routes = _read(GPX_10).routes
    assert len(routes) == 1
    assert routes[0].name == "Old file"
    assert routes[0].positions[0].description == "Only"


def test_wellformed_without_content_gives_no_routes():
    assert _read('<gpx version="1.1"></gpx>').routes == []


def test_invalid_coordinates_are_skipped():
    text = '<gpx version="1.1"><wpt lat="95" lon="0"/><wpt lat="x" lon="0"/><wpt lat="1" lon="2"/></gpx>'
    routes = _read(text).routes
    assert routes[0].position_count == 1


@pytest.mark.parametrize("text", ["", "not xml at all", "<kml></kml>"])
def test_rejects_non_gpx(text):
    with pytest.raises(ValueError):
        _read(text)


def test_roundtrip_track_within_tolerance():
    t = datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)
    route = Route(
        format=Gpx11Format(),
        characteristics=RouteCharacteristics.Track,
        name="Fish & Chips <run>",
        positions=[
            Position(-114.123456789, 46.987654321, elevation=1234.5, time=t, description="Start"),
            Position(-114.2, 46.9, description="End"),
        ],
    )
    text = _write(route)
    assert "Fish &amp; Chips &lt;run&gt;" in text
    reread = _read(text).routes[0]
    assert reread.name == "Fish & Chips <run>"
    assert reread.characteristics == RouteCharacteristics.Track
    for before, after in zip(route.positions, reread.positions):
        assert after.longitude == pytest.approx(before.longitude, abs=1e-6)
        assert after.latitude == pytest.approx(before.latitude, abs=1e-6)
        assert after.description == before.description
    assert reread.positions[0].time == t
    assert reread.positions[0].elevation == pytest.approx(1234.5)


def test_write_slice_only():
    route = Route(
        format=Gpx11Format(),
        characteristics=RouteCharacteristics.Route,
        positions=[Position(float(i), float(i), description=f"P{i}") for i in range(5)],
    )
    out = io.BytesIO()
    Gpx11Format().write(route, out, 1, 3)
    reread = _read(out.getvalue().decode("utf-8")).routes[0]
    assert [p.description for p in reread.positions] == ["P1", "P2"]


def test_write_routes_orders_waypoints_before_routes_before_tracks():
    gpx = Gpx11Format()
    track = Route(format=gpx, characteristics=RouteCharacteristics.Track, name="T", positions=[Position(1.0, 1.0)])
    waypoints = Route(format=gpx, characteristics=RouteCharacteristics.Waypoints, positions=[Position(2.0, 2.0)])
    out = io.BytesIO()
    gpx.write_routes([track, waypoints], out)
    text = out.getvalue().decode("utf-8")
    assert text.index("<wpt") < text.index("<trk>")
