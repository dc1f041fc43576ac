"""Tests for the KML, GeoJSON, TomTom ITN, CSV and OziExplorer codecs."""

import io
import json
from datetime import datetime, timezone

import pytest

from waypost.core.context import ParseContext
from waypost.core.stream import RewindableStream
from waypost.io.geojson import GeoJsonFormat
from waypost.io.google_maps_url import GoogleMapsUrlFormat
from waypost.io.itn import TomTomRouteFormat
from waypost.io.kml import Kml22Format
from waypost.io.plt import OziExplorerTrackFormat
from waypost.io.simple_csv import SimpleCsvFormat
from waypost.model import Position, Route, RouteCharacteristics


T0 = datetime(2024, 3, 2, 10, 15, 30, tzinfo=timezone.utc)


def _read(codec, data, start_time=None):
    if isinstance(data, str):
        data = data.encode("utf-8")
    stream = RewindableStream(io.BytesIO(data))
    stream.mark(len(data) + 1)
    context = ParseContext(start_time=start_time)
    codec.read(stream, context)
    return context.routes


def _write(codec, route):
    out = io.BytesIO()
    codec.write(route, out, 0, route.position_count)
    return out.getvalue()


def _assert_same_coordinates(before, after):
    assert len(before) == len(after)
    for a, b in zip(before, after):
        assert b.longitude == pytest.approx(a.longitude, abs=1e-6)
        assert b.latitude == pytest.approx(a.latitude, abs=1e-6)


# KML

KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>Trip</name>
    <Placemark><name>Hut</name><Point><coordinates>11.5,47.2,1800</coordinates></Point></Placemark>
    <Placemark>
      <name>Path</name>
      <LineString><coordinates>11.5,47.2,1800 11.6,47.3 bad,token</coordinates></LineString>
    </Placemark>
  </Document>
</kml>
"""


def test_kml_reads_points_and_lines():
    waypoints, path = _read(Kml22Format(), KML)
    assert waypoints.characteristics == RouteCharacteristics.Waypoints
    assert waypoints.name == "Trip"
    assert waypoints.positions[0].description == "Hut"
    assert waypoints.positions[0].elevation == 1800.0
    assert path.name == "Path"
    assert path.characteristics == RouteCharacteristics.Track
    assert path.position_count == 2


def test_kml_keeps_characteristics_through_roundtrip():
    route = Route(
        format=Kml22Format(),
        characteristics=RouteCharacteristics.Route,
        name="Planned",
        positions=[Position(11.123456789, 47.1), Position(11.2, 47.2, elevation=900.0)],
    )
    reread = _read(Kml22Format(), _write(Kml22Format(), route))[0]
    assert reread.characteristics == RouteCharacteristics.Route
    assert reread.name == "Planned"
    _assert_same_coordinates(route.positions, reread.positions)


def test_kml_rejects_other_xml():
    with pytest.raises(ValueError):
        _read(Kml22Format(), '<gpx version="1.1"></gpx>')


# GeoJSON


def test_geojson_roundtrip_track_with_times():
    route = Route(
        format=GeoJsonFormat(),
        characteristics=RouteCharacteristics.Track,
        name="Loop",
        positions=[Position(8.1234567, 49.1, elevation=120.0, time=T0), Position(8.2, 49.2)],
    )
    route.description = ["first", "second"]
    data = _write(GeoJsonFormat(), route)
    feature = json.loads(data)["features"][0]
    assert feature["properties"]["coordTimes"] == ["2024-03-02T10:15:30Z", None]

    reread = _read(GeoJsonFormat(), data)[0]
    assert reread.name == "Loop"
    assert reread.description == ["first", "second"]
    assert reread.positions[0].time == T0
    assert reread.positions[1].time is None
    _assert_same_coordinates(route.positions, reread.positions)


def test_geojson_points_become_waypoints():
    fc = {
        "type": "FeatureCollection",
        "name": "Pins",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {"title": "A"}},
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [500, 2]}, "properties": {}},
            {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": []}, "properties": {}},
        ],
    }
    routes = _read(GeoJsonFormat(), json.dumps(fc))
    assert len(routes) == 1
    assert routes[0].name == "Pins"
    assert [p.description for p in routes[0].positions] == ["A"]


def test_geojson_ignores_times_that_are_not_text():
    fc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {"time": 1709374530}},
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [[1, 2], [3, 4], [5, 6]]},
                "properties": {"coordTimes": [1709374530, None, "2024-03-02T10:15:30Z"]},
            },
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [[1, 2]]},
                "properties": {"coordTimes": "2024-03-02T10:15:30Z"},
            },
        ],
    }
    waypoints, line, single = _read(GeoJsonFormat(), json.dumps(fc))
    assert waypoints.positions[0].time is None
    assert [p.time for p in line.positions] == [None, None, T0]
    assert single.positions[0].time is None


@pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"type": "Feature"}'])
def test_geojson_rejects_other_json(text):
    with pytest.raises(ValueError):
        _read(GeoJsonFormat(), text)


# TomTom ITN


def test_itn_reads_scaled_coordinates():
    routes = _read(TomTomRouteFormat(), "1234567|4812345|Office|4|\r\n1234000|4812000|Home|2|\r\n")
    route = routes[0]
    assert route.characteristics == RouteCharacteristics.Route
    assert route.positions[0].longitude == pytest.approx(12.34567)
    assert route.positions[0].latitude == pytest.approx(48.12345)
    assert [p.description for p in route.positions] == ["Office", "Home"]


def test_itn_flags_departure_waypoints_destination():
    route = Route(
        format=TomTomRouteFormat(),
        positions=[Position(1.0, 2.0, description="a|b"), Position(1.1, 2.1), Position(1.2, 2.2, description="c")],
    )
    lines = _write(TomTomRouteFormat(), route).decode("cp1252").split("\r\n")
    assert lines[0] == "100000|200000|a b|4|"
    assert lines[1].endswith("|0|")
    assert lines[2] == "120000|220000|c|2|"


def test_itn_rejects_free_text():
    with pytest.raises(ValueError):
        _read(TomTomRouteFormat(), "hello world\n")


def test_itn_duplicate_first_position_rule():
    route = Route(format=TomTomRouteFormat(), positions=[Position(1.0, 2.0, description="Home")])
    duplicate = TomTomRouteFormat().duplicate_first_position(route)
    assert duplicate.description == "Start: Home"
    assert duplicate.same_location(route.positions[0])
    assert route.positions[0].description == "Home"


# CSV


def test_csv_roundtrip():
    route = Route(
        format=SimpleCsvFormat(),
        characteristics=RouteCharacteristics.Waypoints,
        positions=[
            Position(-3.7038, 40.4168, elevation=667.0, time=T0, description="Madrid, centre"),
            Position(2.1734, 41.3851, description="Barcelona"),
        ],
    )
    reread = _read(SimpleCsvFormat(), _write(SimpleCsvFormat(), route))[0]
    _assert_same_coordinates(route.positions, reread.positions)
    assert reread.positions[0].description == "Madrid, centre"
    assert reread.positions[0].elevation == 667.0
    assert reread.positions[0].time == T0
    assert reread.positions[1].elevation is None


def test_csv_columns_in_any_order_and_time_of_day():
    text = "Name,Longitude,Latitude,Time\nA,10.5,50.5,07:05:09\n"
    start = datetime(2023, 9, 1, 23, 0, tzinfo=timezone.utc)
    route = _read(SimpleCsvFormat(), text, start_time=start)[0]
    assert route.positions[0].longitude == 10.5
    assert route.positions[0].time == datetime(2023, 9, 1, 7, 5, 9, tzinfo=timezone.utc)


def test_csv_time_of_day_without_start_time_is_dropped():
    route = _read(SimpleCsvFormat(), "Latitude,Longitude,Time\n1,2,07:05:09\n")[0]
    assert route.positions[0].time is None


@pytest.mark.parametrize("text", ["a,b,c\n1,2,3\n", "Latitude,Longitude\nx,y\n"])
def test_csv_rejects_bad_input(text):
    with pytest.raises(ValueError):
        _read(SimpleCsvFormat(), text)


# OziExplorer PLT

PLT = (
    "OziExplorer Track Point File Version 2.1\r\n"
    "WGS 84\r\n"
    "Altitude is in Feet\r\n"
    "Reserved 3\r\n"
    "0,2,255,Morning,0,0,2,8421376\r\n"
    "2\r\n"
    "  47.2000000,  11.5000000,1, 3280.839895,45353.4270833,02-Mar-24,10:15:00\r\n"
    "  47.3000000,  11.6000000,0, -777,0,,\r\n"
)


def test_plt_reads_header_name_feet_and_days():
    route = _read(OziExplorerTrackFormat(), PLT)[0]
    assert route.name == "Morning"
    assert route.characteristics == RouteCharacteristics.Track
    first, second = route.positions
    assert first.elevation == pytest.approx(1000.0, abs=1e-3)
    assert first.time.date() == datetime(2024, 3, 2).date()
    assert second.elevation is None
    assert second.time is None


def test_plt_roundtrip_keeps_time_to_the_second():
    route = Route(
        format=OziExplorerTrackFormat(),
        characteristics=RouteCharacteristics.Track,
        name="Ride, fast",
        positions=[Position(11.5, 47.2, elevation=500.0, time=T0)],
    )
    data = _write(OziExplorerTrackFormat(), route)
    reread = _read(OziExplorerTrackFormat(), data)[0]
    assert reread.name == "Ride  fast"
    assert abs((reread.positions[0].time - T0).total_seconds()) < 1
    assert reread.positions[0].elevation == pytest.approx(500.0, abs=1e-3)
    _assert_same_coordinates(route.positions, reread.positions)


def test_plt_rejects_other_text():
    with pytest.raises(ValueError):
        _read(OziExplorerTrackFormat(), "Latitude,Longitude\n1,2\n")


# Google Maps URL

def test_google_maps_path_link_skips_place_names_and_viewport():
    text = "See https://www.google.com/maps/dir/52.5163,13.3777/Alexanderplatz/52.5219,13.4132/@52.51,13.39,14z for the way"
    route = _read(GoogleMapsUrlFormat(), text)[0]
    assert route.characteristics == RouteCharacteristics.Route
    assert [(p.latitude, p.longitude) for p in route.positions] == [(52.5163, 13.3777), (52.5219, 13.4132)]


def test_google_maps_query_link_orders_origin_waypoints_destination():
    url = "https://www.google.com/maps/dir/?api=1&origin=1,2&destination=7,8&waypoints=3,4%7C5,6&travelmode=walking"
    route = _read(GoogleMapsUrlFormat(), url)[0]
    assert [(p.latitude, p.longitude) for p in route.positions] == [(1, 2), (3, 4), (5, 6), (7, 8)]


def test_google_maps_finds_links_only():
    codec = GoogleMapsUrlFormat()
    assert codec.find_url("https://example.org/maps/dir/1,2") is None
    assert codec.find_url('<a href="https://maps.google.de/maps/dir/1,2/3,4">') == "https://maps.google.de/maps/dir/1,2/3,4"
    with pytest.raises(ValueError):
        _read(codec, "Latitude,Longitude\n1,2\n")
