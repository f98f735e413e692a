"""Splice-tray services: splitters, fusions and fiber connections inside a box."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from fibernet.schemas.network import Box, FiberConnection, Fusion, NetworkState, Splitter
from fibernet.services.common import new_id
from fibernet.services.network._common import (
    EditReason,
    EditResult,
    rejected,
    replace_nodes,
)
from fibernet.services.network.colors import ColorStandard, fiber_color
from fibernet.services.network.ports import fiber_port_id

logger = logging.getLogger(__name__)

_RATIO_RE = re.compile(r"^\s*1\s*:\s*(\d+)\s*$")


def _get_box(network: NetworkState, box_id: str) -> Box | EditResult:
    node = network.get_node(box_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {box_id} not found")
    if not isinstance(node, Box):
        return rejected(network, EditReason.box_required, f"Node {box_id} is not a box")
    return node


def _used_ports(box: Box) -> set[str]:
    used = set()
    for connection in box.connections:
        used.add(connection.source_id)
        used.add(connection.target_id)
    return used


def _without_connections_on(box: Box, port_ids: set[str]) -> list[FiberConnection]:
    return [
        connection
        for connection in box.connections
        if connection.source_id not in port_ids and connection.target_id not in port_ids
    ]


def add_splitter(
    network: NetworkState,
    box_id: str,
    ratio: str = "1:8",
    *,
    splitter_id: str | None = None,
    name: str | None = None,
) -> EditResult:
    """Add a 1:N splitter with ports ``{id}-in`` and ``{id}-out-{i}``."""
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    match = _RATIO_RE.match(ratio)
    outputs = int(match.group(1)) if match else 0
    if outputs < 2:
        return rejected(network, EditReason.invalid_ratio, f"Invalid splitter ratio {ratio!r}")

    splitter_id = splitter_id or new_id("spl")
    if any(s.id == splitter_id for s in box.splitters):
        return rejected(
            network, EditReason.duplicate_id, f"Splitter id {splitter_id} already exists"
        )
    splitter = Splitter(
        id=splitter_id,
        name=name or f"S{len(box.splitters) + 1}",
        type=f"1:{outputs}",
        input_port_id=f"{splitter_id}-in",
        output_port_ids=[f"{splitter_id}-out-{i}" for i in range(outputs)],
    )
    box = box.model_copy(update={"splitters": [*box.splitters, splitter]})
    logger.info("Added splitter %s (1:%d) to box %s", splitter_id, outputs, box_id)
    return EditResult(network=replace_nodes(network, [box]), message=f"Splitter {splitter.name} added")


def remove_splitter(network: NetworkState, box_id: str, splitter_id: str) -> EditResult:
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    splitter = next((s for s in box.splitters if s.id == splitter_id), None)
    if splitter is None:
        return rejected(
            network, EditReason.splitter_not_found, f"Splitter {splitter_id} not found"
        )
    box = box.model_copy(
        update={
            "splitters": [s for s in box.splitters if s.id != splitter_id],
            "connections": _without_connections_on(box, set(splitter.port_ids())),
        }
    )
    logger.info("Removed splitter %s from box %s", splitter_id, box_id)
    return EditResult(network=replace_nodes(network, [box]), message=f"Splitter {splitter.name} removed")


def add_fusion(
    network: NetworkState,
    box_id: str,
    *,
    fusion_id: str | None = None,
    name: str | None = None,
    attenuation_db: float = 0.0,
) -> EditResult:
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    fusion_id = fusion_id or new_id("fus")
    if any(f.id == fusion_id for f in box.fusions):
        return rejected(network, EditReason.duplicate_id, f"Fusion id {fusion_id} already exists")
    fusion = Fusion(
        id=fusion_id,
        name=name or f"F-{len(box.fusions) + 1}",
        attenuation_db=attenuation_db,
    )
    box = box.model_copy(update={"fusions": [*box.fusions, fusion]})
    logger.info("Added fusion %s to box %s", fusion_id, box_id)
    return EditResult(network=replace_nodes(network, [box]), message=f"Fusion {fusion.name} added")


def remove_fusion(network: NetworkState, box_id: str, fusion_id: str) -> EditResult:
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    fusion = next((f for f in box.fusions if f.id == fusion_id), None)
    if fusion is None:
        return rejected(network, EditReason.fusion_not_found, f"Fusion {fusion_id} not found")
    box = box.model_copy(
        update={
            "fusions": [f for f in box.fusions if f.id != fusion_id],
            "connections": _without_connections_on(box, {fusion.side_a, fusion.side_b}),
        }
    )
    logger.info("Removed fusion %s from box %s", fusion_id, box_id)
    return EditResult(network=replace_nodes(network, [box]), message=f"Fusion {fusion.name} removed")


def add_connection(
    network: NetworkState,
    box_id: str,
    source_id: str,
    target_id: str,
    *,
    connection_id: str | None = None,
    color: str | None = None,
) -> EditResult:
    """Link two ports inside a box; each port takes part in one connection."""
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    if source_id == target_id:
        return rejected(network, EditReason.port_in_use, "A port cannot connect to itself")
    used = _used_ports(box)
    for port_id in (source_id, target_id):
        if port_id in used:
            return rejected(network, EditReason.port_in_use, f"Port {port_id} is already connected")
    connection_id = connection_id or new_id("conn")
    if any(c.id == connection_id for c in box.connections):
        return rejected(
            network, EditReason.duplicate_id, f"Connection id {connection_id} already exists"
        )
    connection = FiberConnection(
        id=connection_id, source_id=source_id, target_id=target_id, color=color
    )
    box = box.model_copy(update={"connections": [*box.connections, connection]})
    return EditResult(network=replace_nodes(network, [box]), message="Connection added")


def remove_connection(network: NetworkState, box_id: str, connection_id: str) -> EditResult:
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    if not any(c.id == connection_id for c in box.connections):
        return rejected(
            network, EditReason.connection_not_found, f"Connection {connection_id} not found"
        )
    box = box.model_copy(
        update={"connections": [c for c in box.connections if c.id != connection_id]}
    )
    return EditResult(network=replace_nodes(network, [box]), message="Connection removed")


def auto_splice(
    network: NetworkState,
    box_id: str,
    source_cable_id: str,
    target_cable_id: str,
    *,
    standard: ColorStandard = ColorStandard.abnt,
    id_factory: Callable[[int], str] | None = None,
) -> EditResult:
    """Pass-through splice: fiber *i* of one cable onto fiber *i* of the other.

    Both cables must enter the box. Fibers already used by a connection
    are skipped.
    """
    box = _get_box(network, box_id)
    if isinstance(box, EditResult):
        return box
    if source_cable_id == target_cable_id:
        return rejected(
            network, EditReason.invalid_endpoint, "Pass-through needs two different cables"
        )
    cables = []
    for cable_id in (source_cable_id, target_cable_id):
        cable = network.get_cable(cable_id)
        if cable is None:
            return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
        if cable_id not in box.input_cable_ids:
            return rejected(
                network,
                EditReason.not_connected,
                f"Cable {cable_id} does not enter box {box.name or box.id}",
            )
        cables.append(cable)
    source, target = cables

    used = _used_ports(box)
    make_id = id_factory or (lambda index: new_id(f"conn-pass-{index}"))
    created = []
    for index in range(min(source.fiber_count, target.fiber_count)):
        source_port = fiber_port_id(source.id, index)
        target_port = fiber_port_id(target.id, index)
        if source_port in used or target_port in used:
            continue
        created.append(
            FiberConnection(
                id=make_id(index),
                source_id=source_port,
                target_id=target_port,
                color=fiber_color(index, standard),
            )
        )

    box = box.model_copy(update={"connections": [*box.connections, *created]})
    logger.info(
        "Pass-through spliced %d fiber(s) %s -> %s in box %s",
        len(created),
        source.id,
        target.id,
        box_id,
    )
    return EditResult(
        network=replace_nodes(network, [box]),
        message=f"{len(created)} fiber(s) spliced",
        cable_ids=(source.id, target.id),
    )
