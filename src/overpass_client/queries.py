"""Overpass QL construction helpers.

Pure string templating: the pipeline treats queries as opaque text, so
nothing here validates QL grammar. Numbers are rendered the way
JavaScript prints them (``40.0`` -> ``40``) and tag maps are serialized
compactly, keeping query text and cache keys stable across clients.
"""

import json
from typing import Iterable, Literal, Mapping, Sequence, Tuple, Union
from urllib.parse import quote

ElementType = Literal["node", "way", "relation"]
OutputFormat = Literal["json", "xml"]
Number = Union[int, float]
BoundingBox = Tuple[Number, Number, Number, Number]

ELEMENT_TYPES: Tuple[ElementType, ...] = ("node", "way", "relation")
OUTPUT_FORMATS: Tuple[OutputFormat, ...] = ("json", "xml")

DEFAULT_ELEMENT_OUTPUT = "out;"
DEFAULT_AREA_OUTPUT = "out center;"

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def format_number(value: Number) -> str:
    """Render a number as JavaScript's ``String(value)`` would."""
    if isinstance(value, bool):
        raise TypeError("booleans are not coordinates")
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def build_full_query(body: str, format: OutputFormat = "json", timeout: int = 0) -> str:
    """Wrap a query body with the output-format and timeout preamble.

    >>> build_full_query("node(1); out;", "json", 60)
    '[out:json][timeout:60];node(1); out;'
    >>> build_full_query("node(1); out;", "xml", 0)
    '[out:xml];node(1); out;'
    """
    timeout_clause = f"[timeout:{timeout}]" if timeout != 0 else ""
    return f"[out:{format}]{timeout_clause};{body}"


def encode_form_body(full_query: str) -> str:
    """Encode a full query as the ``data`` form field of the POST body."""
    return f"data={quote(full_query, safe=_URI_COMPONENT_SAFE)}"


def validate_element_types(elements: Iterable[str]) -> Tuple[ElementType, ...]:
    result = tuple(elements)
    if not result:
        raise ValueError("at least one element type is required")
    for element in result:
        if element not in ELEMENT_TYPES:
            raise ValueError(
                f"Unknown element type {element!r}; expected one of {', '.join(ELEMENT_TYPES)}"
            )
    return result  # type: ignore[return-value]


def _tags_key(tags: Mapping[str, Sequence[str]]) -> str:
    return json.dumps(
        {tag: list(values) for tag, values in tags.items()},
        separators=(",", ":"),
        ensure_ascii=False,
    )


def element_query(element_type: ElementType, element_id: int, output_format: str) -> Tuple[str, str]:
    """Query body and cache key for a single element lookup."""
    validate_element_types([element_type])
    return f"{element_type}({element_id}); {output_format}", f"{element_type}-{element_id}"


def bounding_box_query(
    tags: Mapping[str, Sequence[str]],
    bbox: Sequence[Number],
    elements: Sequence[ElementType],
    output_format: str,
) -> Tuple[str, str]:
    """Query body and cache key for tagged elements inside a bounding box.

    Args:
        tags: Tag name -> accepted values, e.g. ``{"amenity": ["cafe"]}``
        bbox: ``(min_lat, min_lon, max_lat, max_lon)``
        elements: Element types to include
        output_format: Trailing QL output statement
    """
    if len(bbox) != 4:
        raise ValueError(f"bbox must have 4 coordinates, got {len(bbox)}")
    elements = validate_element_types(elements)
    coords = ",".join(format_number(c) for c in bbox)

    groups = []
    for tag, values in tags.items():
        for value in values:
            selectors = " ".join(f'{el}["{tag}"="{value}"]({coords});' for el in elements)
            groups.append(f"({selectors});")

    key = "-".join(
        ["bbox", _tags_key(tags), "-".join(format_number(c) for c in bbox), "-".join(elements)]
    )
    return f"{' '.join(groups)} {output_format}", key


def radius_query(
    tags: Mapping[str, Sequence[str]],
    lat: Number,
    lon: Number,
    radius: Number,
    elements: Sequence[ElementType],
    output_format: str,
) -> Tuple[str, str]:
    """Query body and cache key for tagged elements around a point.

    Args:
        tags: Tag name -> accepted values
        lat: Latitude of the center point
        lon: Longitude of the center point
        radius: Search radius in meters
        elements: Element types to include
        output_format: Trailing QL output statement
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    elements = validate_element_types(elements)
    r, la, lo = format_number(radius), format_number(lat), format_number(lon)

    groups = []
    for tag, values in tags.items():
        for value in values:
            selectors = " ".join(f'{el}(around:{r},{la},{lo})["{tag}"="{value}"];' for el in elements)
            groups.append(f"({selectors});")

    key = "-".join(["radius", _tags_key(tags), la, lo, r, "-".join(elements)])
    return f"{' '.join(groups)} {output_format}", key
