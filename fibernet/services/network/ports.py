"""Typed port references.

Port ids are plain strings in the stored network:

- fiber ports: ``{cableId}-fiber-{index}``
- fusion sides: ``{fusionId}-a`` / ``{fusionId}-b``
- splitter ports: ``{splitterId}-in`` / ``{splitterId}-out-{index}``

Anything else (OLT/DIO ports, customer drops) is treated as equipment.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Union

FIBER_MARKER = "-fiber-"

_SPLITTER_OUT_RE = re.compile(r"^(?P<splitter>.+)-out-(?P<index>\d+)$")


class FusionSideName(enum.Enum):
    a = "a"
    b = "b"

    @property
    def other(self) -> FusionSideName:
        return FusionSideName.b if self is FusionSideName.a else FusionSideName.a


@dataclass(frozen=True)
class FiberPort:
    cable_id: str
    index: int


@dataclass(frozen=True)
class FusionSide:
    fusion_id: str
    side: FusionSideName

    @property
    def opposite(self) -> FusionSide:
        return FusionSide(self.fusion_id, self.side.other)


@dataclass(frozen=True)
class SplitterPort:
    splitter_id: str
    # None addresses the input port
    output_index: int | None = None

    @property
    def is_input(self) -> bool:
        return self.output_index is None


@dataclass(frozen=True)
class EquipmentPort:
    port_id: str


PortRef = Union[FiberPort, FusionSide, SplitterPort, EquipmentPort]


def fiber_port_id(cable_id: str, index: int) -> str:
    return f"{cable_id}{FIBER_MARKER}{index}"


def parse_port(port_id: str) -> PortRef:
    """Classify a raw port id.

    The fiber marker is matched at its last occurrence and must be followed
    by a numeric index, so cable ids that themselves contain ``-fiber-``
    still resolve to the right cable.
    """
    cable_id, marker, index = port_id.rpartition(FIBER_MARKER)
    if marker and cable_id and index.isdigit():
        return FiberPort(cable_id, int(index))

    match = _SPLITTER_OUT_RE.match(port_id)
    if match:
        return SplitterPort(match.group("splitter"), int(match.group("index")))
    if port_id.endswith("-in") and len(port_id) > 3:
        return SplitterPort(port_id[:-3])

    for side in FusionSideName:
        suffix = f"-{side.value}"
        if port_id.endswith(suffix) and len(port_id) > len(suffix):
            return FusionSide(port_id[: -len(suffix)], side)

    return EquipmentPort(port_id)


def format_port(ref: PortRef) -> str:
    if isinstance(ref, FiberPort):
        return fiber_port_id(ref.cable_id, ref.index)
    if isinstance(ref, FusionSide):
        return f"{ref.fusion_id}-{ref.side.value}"
    if isinstance(ref, SplitterPort):
        if ref.is_input:
            return f"{ref.splitter_id}-in"
        return f"{ref.splitter_id}-out-{ref.output_index}"
    if isinstance(ref, EquipmentPort):
        return ref.port_id
    raise TypeError(f"Unsupported port reference: {ref!r}")


def cable_id_of(port_id: str) -> str | None:
    """Owning cable id of a fiber port, ``None`` for any other port."""
    ref = parse_port(port_id)
    if isinstance(ref, FiberPort):
        return ref.cable_id
    return None


def is_fiber_port(port_id: str) -> bool:
    return isinstance(parse_port(port_id), FiberPort)
