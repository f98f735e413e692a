"""Node and cable lifecycle with back-reference repair."""

from __future__ import annotations

import logging

from fibernet.schemas.network import (
    Box,
    Cable,
    CableStatus,
    Coordinates,
    NetworkState,
    NodeStatus,
    Pole,
)
from fibernet.services.common import validate_enum
from fibernet.services.network._common import (
    EditReason,
    EditResult,
    rejected,
    replace_cables,
    replace_nodes,
    sync_input_cable_ids,
)
from fibernet.services.network.geometry import points_equal, polyline_length_m
from fibernet.services.network.ports import cable_id_of
from fibernet.services.network.snap import auto_snap

logger = logging.getLogger(__name__)


def add_node(
    network: NetworkState, node: Box | Pole, *, snap_radius_m: float | None = None
) -> EditResult:
    """Add a box or pole; a new box picks up loose cable ends within snap range."""
    if network.get_node(node.id) is not None:
        return rejected(network, EditReason.duplicate_id, f"Node id {node.id} already exists")
    network = sync_input_cable_ids(
        network.model_copy(update={"nodes": [*network.nodes, node]})
    )
    snapped = 0
    if isinstance(node, Box):
        snap = auto_snap(network, snap_radius_m)
        network, snapped = snap.network, snap.snapped_count
    logger.info("Added %s %s (%d auto-snapped end(s))", node.kind, node.id, snapped)
    return EditResult(network=network, message=f"{node.name or node.id} added")


def add_cable(
    network: NetworkState, cable: Cable, *, snap_radius_m: float | None = None
) -> EditResult:
    """Add a drawn or imported cable.

    Ends referencing a box are forced onto the box coordinates; loose ends
    are then offered to auto-snap.
    """
    if network.get_cable(cable.id) is not None:
        return rejected(network, EditReason.duplicate_id, f"Cable id {cable.id} already exists")
    if not cable.is_well_formed or polyline_length_m(cable.coordinates) == 0:
        return rejected(
            network, EditReason.malformed_cable, f"Cable {cable.id} needs a non-empty polyline"
        )

    coords = list(cable.coordinates)
    for index, node_id in ((0, cable.from_node_id), (-1, cable.to_node_id)):
        if node_id is None:
            continue
        node = network.get_node(node_id)
        if node is None:
            return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")
        if not isinstance(node, Box):
            return rejected(
                network,
                EditReason.invalid_endpoint,
                f"Pole {node_id} cannot terminate cable {cable.id}; anchor it instead",
            )
        coords[index] = node.coordinates
    if cable.from_node_id is not None and cable.from_node_id == cable.to_node_id:
        return rejected(
            network,
            EditReason.invalid_endpoint,
            f"Cable {cable.id} cannot start and end at the same box",
        )

    placed = cable.model_copy(update={"coordinates": coords})
    network = sync_input_cable_ids(
        network.model_copy(update={"cables": [*network.cables, placed]})
    )
    snap = auto_snap(network, snap_radius_m)
    logger.info("Added cable %s (%d auto-snapped end(s))", cable.id, snap.snapped_count)
    return EditResult(
        network=snap.network,
        message=f"Cable {cable.name or cable.id} added",
        cable_ids=(cable.id,),
    )


def move_node(
    network: NetworkState,
    node_id: str,
    coordinates: Coordinates,
    *,
    snap_radius_m: float | None = None,
) -> EditResult:
    """Move a node and drag the cable geometry attached to it.

    Ends bound to a box follow it; vertices anchored to a pole follow the
    pole. Auto-snap then runs so the new position can pick up loose ends.
    """
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")

    old = node.coordinates
    moved_node = node.model_copy(update={"coordinates": coordinates})
    anchored = set(node.linked_cable_ids) if isinstance(node, Pole) else set()

    cables = []
    touched = []
    for cable in network.cables:
        if not cable.coordinates:
            continue
        coords = list(cable.coordinates)
        changed = False
        if cable.from_node_id == node_id:
            coords[0] = coordinates
            changed = True
        if cable.to_node_id == node_id:
            coords[-1] = coordinates
            changed = True
        if cable.id in anchored:
            for index, point in enumerate(coords):
                if points_equal(point, old):
                    coords[index] = coordinates
                    changed = True
        if changed:
            cables.append(cable.model_copy(update={"coordinates": coords}))
            touched.append(cable.id)

    network = replace_nodes(replace_cables(network, cables), [moved_node])
    network = auto_snap(network, snap_radius_m).network
    logger.info("Moved node %s, dragging %d cable(s)", node_id, len(touched))
    return EditResult(
        network=network,
        message=f"{node.name or node.id} moved",
        cable_ids=tuple(touched),
    )


def delete_node(network: NetworkState, node_id: str) -> EditResult:
    """Remove a node; cables bound to it keep their geometry with free ends."""
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")

    released = []
    cables = []
    for cable in network.cables:
        if cable.is_bound_to(node_id):
            update = {}
            if cable.from_node_id == node_id:
                update["from_node_id"] = None
            if cable.to_node_id == node_id:
                update["to_node_id"] = None
            cable = cable.model_copy(update=update)
            released.append(cable.id)
        cables.append(cable)

    network = sync_input_cable_ids(
        network.model_copy(
            update={
                "nodes": [n for n in network.nodes if n.id != node_id],
                "cables": cables,
            }
        )
    )
    logger.info("Deleted node %s, released %d cable(s)", node_id, len(released))
    return EditResult(
        network=network,
        message=f"{node.name or node.id} deleted",
        cable_ids=tuple(released),
    )


def delete_cable(network: NetworkState, cable_id: str) -> EditResult:
    """Remove a cable and every splice that referenced its fibers."""
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")

    nodes = []
    dropped = 0
    for node in network.nodes:
        if isinstance(node, Box):
            kept = [
                connection
                for connection in node.connections
                if cable_id_of(connection.source_id) != cable_id
                and cable_id_of(connection.target_id) != cable_id
            ]
            if len(kept) != len(node.connections):
                dropped += len(node.connections) - len(kept)
                node = node.model_copy(update={"connections": kept})
        elif isinstance(node, Pole) and cable_id in node.linked_cable_ids:
            node = node.model_copy(
                update={
                    "linked_cable_ids": [cid for cid in node.linked_cable_ids if cid != cable_id]
                }
            )
        nodes.append(node)

    network = sync_input_cable_ids(
        network.model_copy(
            update={
                "nodes": nodes,
                "cables": [c for c in network.cables if c.id != cable_id],
            }
        )
    )
    logger.info("Deleted cable %s and %d splice connection(s)", cable_id, dropped)
    return EditResult(network=network, message=f"Cable {cable.name or cable.id} deleted")


def _require_status(value, enum_cls, label: str):
    status = validate_enum(value, enum_cls, label)
    if status is None:
        raise ValueError(f"Invalid {label}")
    return status


def update_node_status(network: NetworkState, node_id: str, status) -> EditResult:
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")
    status = _require_status(status, NodeStatus, "node status")
    return EditResult(
        network=replace_nodes(network, [node.model_copy(update={"status": status})]),
        message=f"{node.name or node.id} is now {status.value}",
    )


def update_cable_status(network: NetworkState, cable_id: str, status) -> EditResult:
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
    status = _require_status(status, CableStatus, "cable status")
    return EditResult(
        network=replace_cables(network, [cable.model_copy(update={"status": status})]),
        message=f"Cable {cable.name or cable.id} is now {status.value}",
        cable_ids=(cable_id,),
    )
