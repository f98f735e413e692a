from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeStatus(enum.Enum):
    planned = "PLANNED"
    not_deployed = "NOT_DEPLOYED"
    deployed = "DEPLOYED"
    certified = "CERTIFIED"
    analysing = "ANALYSING"
    licensed = "LICENSED"


class CableStatus(enum.Enum):
    not_deployed = "NOT_DEPLOYED"
    deployed = "DEPLOYED"


class CableType(enum.Enum):
    drop = "DROP"
    distribution = "DISTRIBUTION"
    feeder = "FEEDER"


class NetworkModel(BaseModel):
    """Base for network snapshot shapes.

    Instances are frozen: engine operations build new values with
    ``model_copy(update=...)``. JSON uses the camelCase keys of the stored
    network snapshot.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Coordinates(NetworkModel):
    lat: float
    lng: float


class Splitter(NetworkModel):
    id: str = Field(min_length=1)
    name: str = ""
    type: str = "1:8"
    input_port_id: str = Field(min_length=1)
    output_port_ids: list[str] = Field(min_length=1)

    def port_ids(self) -> list[str]:
        return [self.input_port_id, *self.output_port_ids]


class Fusion(NetworkModel):
    id: str = Field(min_length=1)
    name: str = ""
    attenuation_db: float = Field(default=0.0, ge=0)

    @property
    def side_a(self) -> str:
        return f"{self.id}-a"

    @property
    def side_b(self) -> str:
        return f"{self.id}-b"


class FiberConnection(NetworkModel):
    id: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    color: str | None = None

    def touches(self, port_id: str) -> bool:
        return port_id in (self.source_id, self.target_id)

    def other_end(self, port_id: str) -> str:
        return self.target_id if self.source_id == port_id else self.source_id


class NodeBase(NetworkModel):
    id: str = Field(min_length=1)
    name: str = ""
    status: NodeStatus = NodeStatus.planned
    coordinates: Coordinates


class Box(NodeBase):
    """CTO/CEO splice or distribution box."""

    kind: Literal["box"] = "box"
    splitters: list[Splitter] = Field(default_factory=list)
    fusions: list[Fusion] = Field(default_factory=list)
    connections: list[FiberConnection] = Field(default_factory=list)
    input_cable_ids: list[str] = Field(default_factory=list)
    client_count: int = Field(default=0, ge=0)


class Pole(NodeBase):
    kind: Literal["pole"] = "pole"
    linked_cable_ids: list[str] = Field(default_factory=list)


Node = Annotated[Union[Box, Pole], Field(discriminator="kind")]


class Cable(NetworkModel):
    id: str = Field(min_length=1)
    name: str = ""
    status: CableStatus = CableStatus.not_deployed
    cable_type: CableType = CableType.distribution
    fiber_count: int = Field(default=12, ge=1)
    loose_tube_count: int | None = Field(default=None, ge=1)
    coordinates: list[Coordinates] = Field(default_factory=list)
    from_node_id: str | None = None
    to_node_id: str | None = None
    technical_reserve: float = Field(default=0.0, ge=0)
    reserve_location: Coordinates | None = None
    color: str | None = None

    @property
    def is_well_formed(self) -> bool:
        return len(self.coordinates) >= 2

    def fiber_port_ids(self) -> list[str]:
        return [f"{self.id}-fiber-{index}" for index in range(self.fiber_count)]

    def is_bound_to(self, node_id: str) -> bool:
        return node_id in (self.from_node_id, self.to_node_id)


class NetworkState(NetworkModel):
    nodes: list[Node] = Field(default_factory=list)
    cables: list[Cable] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_ids(self) -> NetworkState:
        node_ids = [node.id for node in self.nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("Node ids must be unique.")
        cable_ids = [cable.id for cable in self.cables]
        if len(cable_ids) != len(set(cable_ids)):
            raise ValueError("Cable ids must be unique.")
        return self

    def get_node(self, node_id: str | None) -> Box | Pole | None:
        if node_id is None:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_cable(self, cable_id: str | None) -> Cable | None:
        if cable_id is None:
            return None
        for cable in self.cables:
            if cable.id == cable_id:
                return cable
        return None

    def boxes(self) -> list[Box]:
        return [node for node in self.nodes if isinstance(node, Box)]

    def poles(self) -> list[Pole]:
        return [node for node in self.nodes if isinstance(node, Pole)]
