"""OTDR trace simulation.

Given a start box, a fiber port and a distance, walk the plant the way a
reflectometer pulse would: technical reserve first, then the cable's
geometry, then the slack coiled inside each box, then across the box's
splices onto the next cable. The walk reports where the distance budget runs
out or why the path ends; it never raises and never touches UI state.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from fibernet.config import settings
from fibernet.schemas.network import Box, Cable, Coordinates, NetworkState, Pole
from fibernet.services.network.geometry import distance_m, interpolate
from fibernet.services.network.ports import (
    FiberPort,
    FusionSide,
    SplitterPort,
    fiber_port_id,
    format_port,
    parse_port,
)

logger = logging.getLogger(__name__)


class TraceOutcome(enum.Enum):
    event_found = "event_found"
    inside_reserve = "inside_reserve"
    inside_box_slack = "inside_box_slack"
    open_end = "open_end"
    fiber_end_at_node = "fiber_end_at_node"
    event_at_equipment = "event_at_equipment"
    connection_mismatch = "connection_mismatch"
    invalid_start_port = "invalid_start_port"
    cable_not_found = "cable_not_found"
    node_not_found = "node_not_found"
    max_depth_exceeded = "max_depth_exceeded"


# Outcomes that place the measured event somewhere on the plant
EVENT_OUTCOMES = frozenset(
    {TraceOutcome.event_found, TraceOutcome.inside_reserve, TraceOutcome.inside_box_slack}
)


@dataclass(frozen=True)
class TraceHop:
    cable_id: str
    port_id: str
    entry_node_id: str
    exit_node_id: str | None
    length_m: float
    reserve_m: float


@dataclass(frozen=True)
class TraceResult:
    outcome: TraceOutcome
    coordinates: Coordinates | None
    target_distance_m: float
    remaining_m: float
    cable_id: str | None = None
    node_id: str | None = None
    hops: tuple[TraceHop, ...] = ()

    @property
    def is_event(self) -> bool:
        return self.outcome in EVENT_OUTCOMES

    @property
    def traveled_m(self) -> float:
        return self.target_distance_m - self.remaining_m


@dataclass(frozen=True)
class _BoxExit:
    port_id: str | None
    outcome: TraceOutcome | None


def _exit_port(box: Box, port_id: str) -> _BoxExit:
    """Follow the splice chain inside ``box`` from an incoming fiber port.

    Fusion sides are crossed and a splitter output leads back to its input;
    both have a single continuation. A splitter input fans out, so it counts
    as equipment like any other non-fiber port.
    """
    splitter_inputs = {}
    for splitter in box.splitters:
        for output_id in splitter.output_port_ids:
            splitter_inputs[output_id] = splitter.input_port_id
    fusion_ids = {fusion.id for fusion in box.fusions}

    current = port_id
    used: set[str] = set()
    while True:
        connection = next(
            (c for c in box.connections if c.id not in used and c.touches(current)), None
        )
        if connection is None:
            return _BoxExit(None, TraceOutcome.fiber_end_at_node)
        used.add(connection.id)
        other = connection.other_end(current)
        ref = parse_port(other)
        if isinstance(ref, FiberPort):
            return _BoxExit(other, None)
        if isinstance(ref, FusionSide) and ref.fusion_id in fusion_ids:
            current = format_port(ref.opposite)
            continue
        if isinstance(ref, SplitterPort) and other in splitter_inputs:
            current = splitter_inputs[other]
            continue
        return _BoxExit(other, TraceOutcome.event_at_equipment)


def _orient(cable: Cable, node_id: str) -> tuple[list[Coordinates], str | None] | None:
    if cable.from_node_id == node_id:
        return list(cable.coordinates), cable.to_node_id
    if cable.to_node_id == node_id:
        return list(reversed(cable.coordinates)), cable.from_node_id
    return None


def _pass_through_pole(network: NetworkState, pole: Pole, cable: Cable) -> Cable | None:
    for other in network.cables:
        if other.id != cable.id and other.is_bound_to(pole.id):
            return other
    return None


def trace(
    network: NetworkState,
    start_node_id: str,
    start_port_id: str,
    target_distance_m: float,
    *,
    box_slack_m: float | None = None,
    max_hops: int | None = None,
) -> TraceResult:
    """Locate the point ``target_distance_m`` meters down a fiber.

    Args:
        network: Network snapshot to walk.
        start_node_id: Node where the instrument is plugged in.
        start_port_id: Fiber port (``{cableId}-fiber-{index}``) leaving that node.
        target_distance_m: Distance reported by the instrument.
        box_slack_m: Fiber coiled inside every box crossed; defaults to
            ``settings.otdr_box_slack_m``.
        max_hops: Cable legs walked before giving up; defaults to
            ``settings.otdr_max_hops``.

    Returns:
        TraceResult with the outcome and, whenever one is known, the map
        coordinate to display.
    """
    slack = settings.otdr_box_slack_m if box_slack_m is None else box_slack_m
    hop_limit = settings.otdr_max_hops if max_hops is None else max_hops
    target = max(0.0, float(target_distance_m))
    remaining = target
    node_id = start_node_id
    port_id = start_port_id
    hops: list[TraceHop] = []

    start_node = network.get_node(start_node_id)
    last_point = start_node.coordinates if start_node is not None else None

    def finish(
        outcome: TraceOutcome,
        point: Coordinates | None,
        cable_id: str | None = None,
        at_node_id: str | None = None,
    ) -> TraceResult:
        logger.debug(
            "OTDR trace from %s/%s for %.2f m ended with %s after %d hop(s)",
            start_node_id,
            start_port_id,
            target,
            outcome.value,
            len(hops),
        )
        return TraceResult(
            outcome=outcome,
            coordinates=point,
            target_distance_m=target,
            remaining_m=remaining,
            cable_id=cable_id,
            node_id=at_node_id,
            hops=tuple(hops),
        )

    for _ in range(hop_limit):
        ref = parse_port(port_id)
        if not isinstance(ref, FiberPort):
            return finish(TraceOutcome.invalid_start_port, last_point, at_node_id=node_id)
        cable = network.get_cable(ref.cable_id)
        if cable is None:
            return finish(TraceOutcome.cable_not_found, last_point, at_node_id=node_id)
        oriented = _orient(cable, node_id)
        if oriented is None:
            return finish(
                TraceOutcome.connection_mismatch, last_point, cable.id, at_node_id=node_id
            )
        path, next_node_id = oriented
        if path:
            last_point = path[0]

        reserve = cable.technical_reserve
        if reserve > 0:
            if remaining <= reserve:
                return finish(TraceOutcome.inside_reserve, last_point, cable.id)
            remaining -= reserve

        length = 0.0
        for index in range(len(path) - 1):
            a, b = path[index], path[index + 1]
            segment = distance_m(a, b)
            if remaining <= segment:
                ratio = remaining / segment if segment > 0 else 0.0
                return finish(TraceOutcome.event_found, interpolate(a, b, ratio), cable.id)
            remaining -= segment
            length += segment
        if path:
            last_point = path[-1]
        hops.append(TraceHop(cable.id, port_id, node_id, next_node_id, length, reserve))

        if next_node_id is None:
            return finish(TraceOutcome.open_end, last_point, cable.id)
        next_node = network.get_node(next_node_id)
        if next_node is None:
            return finish(TraceOutcome.node_not_found, last_point, cable.id, next_node_id)

        if isinstance(next_node, Pole):
            onward = _pass_through_pole(network, next_node, cable)
            if onward is None:
                return finish(
                    TraceOutcome.open_end, next_node.coordinates, cable.id, next_node.id
                )
            if ref.index >= onward.fiber_count:
                return finish(
                    TraceOutcome.fiber_end_at_node, next_node.coordinates, onward.id, next_node.id
                )
            port_id = fiber_port_id(onward.id, ref.index)
            node_id = next_node.id
            last_point = next_node.coordinates
            continue

        if isinstance(next_node, Box):
            if remaining <= slack:
                return finish(
                    TraceOutcome.inside_box_slack, next_node.coordinates, cable.id, next_node.id
                )
            remaining -= slack
            exit_ = _exit_port(next_node, port_id)
            if exit_.outcome is not None:
                return finish(exit_.outcome, next_node.coordinates, cable.id, next_node.id)
            port_id = exit_.port_id
            node_id = next_node.id
            last_point = next_node.coordinates
            continue

        return finish(TraceOutcome.fiber_end_at_node, next_node.coordinates, cable.id, next_node.id)

    return finish(TraceOutcome.max_depth_exceeded, last_point, at_node_id=node_id)
