"""Tests for Overpass QL construction helpers."""

from urllib.parse import unquote

import pytest

from overpass_client.queries import (
    bounding_box_query,
    build_full_query,
    element_query,
    encode_form_body,
    format_number,
    radius_query,
)


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value,expected",
        [(40, "40"), (40.0, "40"), (-73.5, "-73.5"), (0.0001, "0.0001"), (500, "500")],
    )
    def test_javascript_rendering(self, value, expected):
        assert format_number(value) == expected

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            format_number(True)


class TestFullQuery:
    def test_timeout_clause(self):
        assert build_full_query("way(2); out;", "json", 30) == "[out:json][timeout:30];way(2); out;"

    def test_zero_timeout_omits_clause(self):
        assert build_full_query("way(2); out;", "xml", 0) == "[out:xml];way(2); out;"

    def test_form_body_matches_encode_uri_component(self):
        body = encode_form_body('[out:json];node["amenity"="cafe"](1,2,3,4); out;')
        assert body == (
            "data=%5Bout%3Ajson%5D%3Bnode%5B%22amenity%22%3D%22cafe%22%5D"
            "(1%2C2%2C3%2C4)%3B%20out%3B"
        )

    def test_form_body_round_trips(self):
        text = "[out:json][timeout:60];node(around:100,1.5,2.5); out center;"
        assert unquote(encode_form_body(text)[len("data="):]) == text


class TestElementQuery:
    def test_query_and_key(self):
        assert element_query("node", 123, "out;") == ("node(123); out;", "node-123")

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown element type"):
            element_query("area", 1, "out;")


class TestBoundingBoxQuery:
    def test_query_text(self):
        query, _ = bounding_box_query(
            {"amenity": ["cafe", "bar"]},
            (40.0, -74.0, 41.0, -73.0),
            ("node", "way"),
            "out center;",
        )
        assert query == (
            '(node["amenity"="cafe"](40,-74,41,-73); way["amenity"="cafe"](40,-74,41,-73);); '
            '(node["amenity"="bar"](40,-74,41,-73); way["amenity"="bar"](40,-74,41,-73);); '
            "out center;"
        )

    def test_cache_key(self):
        _, key = bounding_box_query(
            {"amenity": ["cafe"], "tourism": ["museum"]},
            [40.5, -74, 41, -73.25],
            ["node", "way", "relation"],
            "out center;",
        )
        assert key == (
            'bbox-{"amenity":["cafe"],"tourism":["museum"]}-40.5--74-41--73.25-node-way-relation'
        )

    def test_wrong_bbox_length(self):
        with pytest.raises(ValueError, match="4 coordinates"):
            bounding_box_query({"a": ["b"]}, (1, 2, 3), ["node"], "out;")

    def test_empty_elements(self):
        with pytest.raises(ValueError):
            bounding_box_query({"a": ["b"]}, (1, 2, 3, 4), [], "out;")


class TestRadiusQuery:
    def test_query_text(self):
        query, _ = radius_query({"amenity": ["cafe"]}, 52.52, 13.405, 500, ["node"], "out center;")
        assert query == '(node(around:500,52.52,13.405)["amenity"="cafe"];); out center;'

    def test_cache_key(self):
        _, key = radius_query(
            {"amenity": ["cafe"]}, 52.52, 13.405, 500.0, ["node", "way"], "out center;"
        )
        assert key == 'radius-{"amenity":["cafe"]}-52.52-13.405-500-node-way'

    def test_negative_radius(self):
        with pytest.raises(ValueError, match="radius"):
            radius_query({"a": ["b"]}, 1, 2, -5, ["node"], "out;")
