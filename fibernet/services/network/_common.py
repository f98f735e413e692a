"""Shared result types and copy-on-write helpers for network edits."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from fibernet.schemas.network import Box, Cable, NetworkState, Pole

logger = logging.getLogger(__name__)


class EditReason(enum.Enum):
    cable_not_found = "cable_not_found"
    node_not_found = "node_not_found"
    malformed_cable = "malformed_cable"
    invalid_point_index = "invalid_point_index"
    already_connected = "already_connected"
    not_connected = "not_connected"
    duplicate_id = "duplicate_id"
    invalid_endpoint = "invalid_endpoint"
    box_required = "box_required"
    splitter_not_found = "splitter_not_found"
    fusion_not_found = "fusion_not_found"
    connection_not_found = "connection_not_found"
    port_in_use = "port_in_use"
    invalid_ratio = "invalid_ratio"


@dataclass(frozen=True)
class EditResult:
    """Outcome of a network edit.

    A rejected edit carries the untouched input network plus a reason the
    caller can show as a notice.
    """

    network: NetworkState
    success: bool = True
    reason: EditReason | None = None
    message: str = ""
    # Cables produced or touched by the edit (both halves after a split)
    cable_ids: tuple[str, ...] = ()
    # Nodes that lost a binding as a side effect of a geometry edit
    disconnected_node_ids: tuple[str, ...] = ()


def rejected(network: NetworkState, reason: EditReason, message: str) -> EditResult:
    logger.info("Network edit rejected (%s): %s", reason.value, message)
    return EditResult(network=network, success=False, reason=reason, message=message)


def replace_cables(network: NetworkState, cables: Iterable[Cable]) -> NetworkState:
    """Swap in updated cables by id, keeping list order."""
    updated = {cable.id: cable for cable in cables}
    return network.model_copy(
        update={"cables": [updated.get(cable.id, cable) for cable in network.cables]}
    )


def replace_nodes(network: NetworkState, nodes: Iterable[Box | Pole]) -> NetworkState:
    updated = {node.id: node for node in nodes}
    return network.model_copy(
        update={"nodes": [updated.get(node.id, node) for node in network.nodes]}
    )


def sync_input_cable_ids(network: NetworkState) -> NetworkState:
    """Recompute back-references from the cables' endpoint bindings.

    ``Box.input_cable_ids`` becomes exactly the cables bound to the box, in
    cable order; ``Pole.linked_cable_ids`` loses ids of cables that no
    longer exist. Nodes that are already consistent keep their identity.
    """
    bound: dict[str, list[str]] = {}
    for cable in network.cables:
        for node_id in dict.fromkeys((cable.from_node_id, cable.to_node_id)):
            if node_id is not None:
                bound.setdefault(node_id, []).append(cable.id)
    cable_ids = {cable.id for cable in network.cables}

    nodes = []
    changed = False
    for node in network.nodes:
        if isinstance(node, Box):
            expected = bound.get(node.id, [])
            if node.input_cable_ids != expected:
                node = node.model_copy(update={"input_cable_ids": expected})
                changed = True
        elif isinstance(node, Pole):
            linked = [cid for cid in dict.fromkeys(node.linked_cable_ids) if cid in cable_ids]
            if node.linked_cable_ids != linked:
                node = node.model_copy(update={"linked_cable_ids": linked})
                changed = True
        nodes.append(node)
    if not changed:
        return network
    return network.model_copy(update={"nodes": nodes})
