"""Overpass JSON response models.

Validates ``[out:json]`` payloads into typed elements. Fields that only
appear for some output statements (``center`` needs ``out center;``,
``tags`` is absent on untagged nodes) default so either shape validates.
Element types other than node, way and relation (``out count;`` results,
``is_in`` areas) validate as OverpassOtherElement. Unknown keys are kept.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class _OverpassModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class Center(_OverpassModel):
    lat: float
    lon: float


class RelationMember(_OverpassModel):
    type: Literal["node", "way", "relation"]
    ref: int
    role: str = ""


class OverpassNode(_OverpassModel):
    type: Literal["node"]
    id: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    tags: dict[str, str] = Field(default_factory=dict)


class OverpassWay(_OverpassModel):
    type: Literal["way"]
    id: int
    center: Optional[Center] = None
    nodes: list[int] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class OverpassRelation(_OverpassModel):
    type: Literal["relation"]
    id: int
    center: Optional[Center] = None
    members: list[RelationMember] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class OverpassOtherElement(_OverpassModel):
    """Element of a type without a dedicated model (``count``, ``area``...)."""

    type: str
    id: Optional[int] = None
    tags: dict[str, str] = Field(default_factory=dict)


_MODELED_TYPES = ("node", "way", "relation")


def _element_tag(value: Any) -> str:
    element_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return element_type if element_type in _MODELED_TYPES else "other"


OverpassElement = Annotated[
    Union[
        Annotated[OverpassNode, Tag("node")],
        Annotated[OverpassWay, Tag("way")],
        Annotated[OverpassRelation, Tag("relation")],
        Annotated[OverpassOtherElement, Tag("other")],
    ],
    Discriminator(_element_tag),
]


class Osm3s(_OverpassModel):
    timestamp_osm_base: str
    copyright: str


class OverpassResponse(_OverpassModel):
    """Top-level ``[out:json]`` response."""

    version: Union[float, str]
    generator: str
    osm3s: Osm3s
    elements: list[OverpassElement] = Field(default_factory=list)

    def nodes(self) -> list[OverpassNode]:
        return [e for e in self.elements if isinstance(e, OverpassNode)]

    def ways(self) -> list[OverpassWay]:
        return [e for e in self.elements if isinstance(e, OverpassWay)]

    def relations(self) -> list[OverpassRelation]:
        return [e for e in self.elements if isinstance(e, OverpassRelation)]

    def other_elements(self) -> list[OverpassOtherElement]:
        return [e for e in self.elements if isinstance(e, OverpassOtherElement)]


def parse_response(payload: Any) -> OverpassResponse:
    """Validate a decoded JSON payload.

    Raises:
        pydantic.ValidationError: If the payload does not look like an
            Overpass response
    """
    return OverpassResponse.model_validate(payload)
