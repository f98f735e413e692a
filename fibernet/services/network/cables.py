"""Cable connection, split and geometry-edit services.

Binding a cable end to a box sets ``from_node_id``/``to_node_id``; attaching
to a pole only anchors a vertex. Connecting a box to an interior vertex splits
the cable in two at that vertex.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from fibernet.config import settings
from fibernet.schemas.network import (
    Box,
    Cable,
    Coordinates,
    FiberConnection,
    NetworkState,
    Pole,
)
from fibernet.services.common import new_id
from fibernet.services.network._common import (
    EditReason,
    EditResult,
    rejected,
    replace_cables,
    replace_nodes,
    sync_input_cable_ids,
)
from fibernet.services.network.geometry import (
    closest_point_on_polyline,
    collapse_duplicate_points,
    distance_m,
    points_equal,
)
from fibernet.services.network.ports import FiberPort, fiber_port_id, parse_port
from fibernet.services.network.snap import auto_snap

logger = logging.getLogger(__name__)

SPLIT_SUFFIX_A = " (A)"
SPLIT_SUFFIX_B = " (B)"


def _split_names(name: str) -> tuple[str, str]:
    base = name
    for suffix in (SPLIT_SUFFIX_A, SPLIT_SUFFIX_B):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    return f"{base}{SPLIT_SUFFIX_A}", f"{base}{SPLIT_SUFFIX_B}"


def _new_cable_id() -> str:
    return new_id("cable") + "-split"


def connect(
    network: NetworkState,
    cable_id: str,
    node_id: str,
    point_index: int,
    *,
    id_factory: Callable[[], str] | None = None,
) -> EditResult:
    """Attach vertex ``point_index`` of a cable to a box or pole.

    On success ``EditResult.cable_ids`` lists the cables the caller should
    keep editable: the cable itself, or both halves after a split.
    """
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")
    if not cable.is_well_formed:
        return rejected(
            network, EditReason.malformed_cable, f"Cable {cable_id} has fewer than two points"
        )
    last_index = len(cable.coordinates) - 1
    if point_index < 0 or point_index > last_index:
        return rejected(
            network,
            EditReason.invalid_point_index,
            f"Point {point_index} is outside cable {cable_id}",
        )

    if isinstance(node, Pole):
        if cable_id in node.linked_cable_ids:
            return rejected(
                network,
                EditReason.already_connected,
                f"Cable {cable_id} is already anchored to pole {node.name or node.id}",
            )
        end_node_id = {0: cable.from_node_id, last_index: cable.to_node_id}.get(point_index)
        if end_node_id is not None:
            return rejected(
                network,
                EditReason.invalid_endpoint,
                f"Point {point_index} of cable {cable_id} is bound to {end_node_id}",
            )
        return _anchor_to_pole(network, cable, node, point_index)

    if cable_id in node.input_cable_ids or cable.is_bound_to(node.id):
        return rejected(
            network,
            EditReason.already_connected,
            f"Cable {cable_id} is already connected to {node.name or node.id}",
        )
    if point_index in (0, last_index):
        return _bind_end(network, cable, node, point_index)
    return split_cable(network, cable, node, point_index, id_factory=id_factory)


def _anchor_to_pole(
    network: NetworkState, cable: Cable, pole: Pole, point_index: int
) -> EditResult:
    coords = list(cable.coordinates)
    coords[point_index] = pole.coordinates
    updated_cable = cable.model_copy(update={"coordinates": coords})
    updated_pole = pole.model_copy(
        update={"linked_cable_ids": [*pole.linked_cable_ids, cable.id]}
    )
    network = replace_nodes(replace_cables(network, [updated_cable]), [updated_pole])
    logger.info("Anchored cable %s to pole %s at point %d", cable.id, pole.id, point_index)
    return EditResult(
        network=network,
        message=f"Cable {cable.name or cable.id} anchored to {pole.name or pole.id}",
        cable_ids=(cable.id,),
    )


def _bind_end(network: NetworkState, cable: Cable, box: Box, point_index: int) -> EditResult:
    coords = list(cable.coordinates)
    coords[point_index] = box.coordinates
    if point_index == 0:
        update = {"coordinates": coords, "from_node_id": box.id}
        side = "start"
    else:
        update = {"coordinates": coords, "to_node_id": box.id}
        side = "end"
    network = sync_input_cable_ids(replace_cables(network, [cable.model_copy(update=update)]))
    logger.info("Connected %s of cable %s to box %s", side, cable.id, box.id)
    return EditResult(
        network=network,
        message=f"Cable {cable.name or cable.id} {side} connected to {box.name or box.id}",
        cable_ids=(cable.id,),
    )


def _rewire_fiber_ports(
    connections: Sequence[FiberConnection], old_cable_id: str, new_cable_id: str
) -> list[FiberConnection]:
    def rewire(port_id: str) -> str:
        ref = parse_port(port_id)
        if isinstance(ref, FiberPort) and ref.cable_id == old_cable_id:
            return fiber_port_id(new_cable_id, ref.index)
        return port_id

    rewired = []
    for connection in connections:
        source_id = rewire(connection.source_id)
        target_id = rewire(connection.target_id)
        if (source_id, target_id) != (connection.source_id, connection.target_id):
            connection = connection.model_copy(
                update={"source_id": source_id, "target_id": target_id}
            )
        rewired.append(connection)
    return rewired


def split_cable(
    network: NetworkState,
    cable: Cable,
    box: Box,
    point_index: int,
    *,
    id_factory: Callable[[], str] | None = None,
) -> EditResult:
    """Split ``cable`` at interior vertex ``point_index`` into a box.

    The first half keeps the cable id and ends at the box, the second half
    gets a new id and starts there. Every other attribute is copied to both
    halves. Splices at the old far end follow the second half, and so do
    poles anchored on it.
    """
    new_cable_id = (id_factory or _new_cable_id)()
    if network.get_cable(new_cable_id) is not None:
        return rejected(
            network, EditReason.duplicate_id, f"Cable id {new_cable_id} already exists"
        )

    coords_a = list(cable.coordinates[: point_index + 1])
    coords_b = list(cable.coordinates[point_index:])
    coords_a[-1] = box.coordinates
    coords_b[0] = box.coordinates
    name_a, name_b = _split_names(cable.name)

    first = cable.model_copy(
        update={"coordinates": coords_a, "to_node_id": box.id, "name": name_a}
    )
    second = cable.model_copy(
        update={
            "id": new_cable_id,
            "coordinates": coords_b,
            "from_node_id": box.id,
            "to_node_id": cable.to_node_id,
            "name": name_b,
        }
    )

    cables = []
    for existing in network.cables:
        cables.append(first if existing.id == cable.id else existing)
    cables.append(second)

    nodes = []
    for node in network.nodes:
        if isinstance(node, Box) and node.id == cable.to_node_id and node.id != box.id:
            node = node.model_copy(
                update={
                    "connections": _rewire_fiber_ports(node.connections, cable.id, new_cable_id)
                }
            )
        elif isinstance(node, Pole) and cable.id in node.linked_cable_ids:
            on_second = any(
                points_equal(node.coordinates, point) for point in coords_b[1:]
            )
            # A pole on the split vertex stays with the original id
            on_first = any(
                points_equal(node.coordinates, point)
                for point in cable.coordinates[: point_index + 1]
            )
            linked = [cid for cid in node.linked_cable_ids if cid != cable.id or on_first]
            if on_second:
                linked.append(new_cable_id)
            node = node.model_copy(update={"linked_cable_ids": linked})
        nodes.append(node)

    network = sync_input_cable_ids(
        network.model_copy(update={"cables": cables, "nodes": nodes})
    )
    logger.info(
        "Split cable %s at point %d into %s and %s at box %s",
        cable.id,
        point_index,
        cable.id,
        new_cable_id,
        box.id,
    )
    return EditResult(
        network=network,
        message=f"Cable {cable.name or cable.id} split at {box.name or box.id}",
        cable_ids=(cable.id, new_cable_id),
    )


def disconnect(network: NetworkState, cable_id: str, node_id: str) -> EditResult:
    """Release a cable from a node; the geometry stays where it is."""
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")

    if isinstance(node, Pole):
        if cable_id not in node.linked_cable_ids:
            return rejected(
                network, EditReason.not_connected, f"Cable {cable_id} is not anchored to {node_id}"
            )
        updated_pole = node.model_copy(
            update={"linked_cable_ids": [cid for cid in node.linked_cable_ids if cid != cable_id]}
        )
        logger.info("Detached cable %s from pole %s", cable_id, node_id)
        return EditResult(
            network=replace_nodes(network, [updated_pole]),
            message=f"Cable {cable.name or cable.id} detached from {node.name or node.id}",
            cable_ids=(cable_id,),
        )

    if not cable.is_bound_to(node_id):
        return rejected(
            network, EditReason.not_connected, f"Cable {cable_id} is not connected to {node_id}"
        )
    network = sync_input_cable_ids(
        replace_cables(network, [_unbind(cable, node_id)])
    )
    logger.info("Disconnected cable %s from box %s", cable_id, node_id)
    return EditResult(
        network=network,
        message=f"Cable {cable.name or cable.id} disconnected from {node.name or node.id}",
        cable_ids=(cable_id,),
    )


def _unbind(cable: Cable, node_id: str) -> Cable:
    update = {}
    if cable.from_node_id == node_id:
        update["from_node_id"] = None
    if cable.to_node_id == node_id:
        update["to_node_id"] = None
    return cable.model_copy(update=update)


def update_cable_geometry(
    network: NetworkState,
    cable_id: str,
    coordinates: Sequence[Coordinates],
    *,
    snap_radius_m: float | None = None,
    disconnect_threshold_m: float | None = None,
    duplicate_threshold_m: float | None = None,
) -> EditResult:
    """Replace a cable's polyline after a direct edit.

    Ends dragged further than the disconnect threshold from their bound box
    are released and reported in ``disconnected_node_ids``. Near-duplicate
    consecutive points are collapsed, then auto-snap runs over the other
    cables; the edited cable only rebinds through an explicit ``connect``.
    """
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
    threshold = (
        settings.disconnect_threshold_m
        if disconnect_threshold_m is None
        else disconnect_threshold_m
    )
    duplicate = (
        settings.duplicate_point_threshold_m
        if duplicate_threshold_m is None
        else duplicate_threshold_m
    )

    coords = collapse_duplicate_points(list(coordinates), duplicate)
    if len(coords) < 2:
        return rejected(
            network, EditReason.malformed_cable, f"Cable {cable_id} needs at least two points"
        )

    disconnected: list[str] = []
    updated = cable
    for index, node_id in ((0, cable.from_node_id), (-1, cable.to_node_id)):
        node = network.get_node(node_id)
        if node is None:
            continue
        offset = distance_m(coords[index], node.coordinates)
        if offset > threshold:
            updated = _unbind(updated, node.id)
            disconnected.append(node.id)
            logger.info(
                "Cable %s moved %.2f m away from %s; binding cleared", cable_id, offset, node.id
            )
        else:
            # Bound ends stay on their node
            coords[index] = node.coordinates
    updated = updated.model_copy(update={"coordinates": coords})

    network = sync_input_cable_ids(replace_cables(network, [updated]))
    network = auto_snap(network, snap_radius_m, exclude_cable_ids=[cable_id]).network
    message = f"Cable {cable.name or cable.id} geometry updated"
    if disconnected:
        message = f"{message}; disconnected from {', '.join(disconnected)}"
    return EditResult(
        network=network,
        message=message,
        cable_ids=(cable_id,),
        disconnected_node_ids=tuple(dict.fromkeys(disconnected)),
    )


def connect_at_nearest_point(
    network: NetworkState,
    cable_id: str,
    node_id: str,
    *,
    id_factory: Callable[[], str] | None = None,
) -> EditResult:
    """Connect a node to the point of the cable closest to it.

    Lands on an existing vertex when the projection coincides with one,
    otherwise inserts a vertex at the projection and connects there.
    """
    cable = network.get_cable(cable_id)
    if cable is None:
        return rejected(network, EditReason.cable_not_found, f"Cable {cable_id} not found")
    node = network.get_node(node_id)
    if node is None:
        return rejected(network, EditReason.node_not_found, f"Node {node_id} not found")
    projection = closest_point_on_polyline(node.coordinates, cable.coordinates)
    if projection is None:
        return rejected(
            network, EditReason.malformed_cable, f"Cable {cable_id} has fewer than two points"
        )

    epsilon = settings.same_point_epsilon_deg
    start = cable.coordinates[projection.segment_index]
    end = cable.coordinates[projection.segment_index + 1]
    if points_equal(projection.point, start, epsilon):
        return connect(network, cable_id, node_id, projection.segment_index, id_factory=id_factory)
    if points_equal(projection.point, end, epsilon):
        return connect(
            network, cable_id, node_id, projection.segment_index + 1, id_factory=id_factory
        )

    insert_at = projection.segment_index + 1
    coords = list(cable.coordinates)
    coords.insert(insert_at, projection.point)
    with_vertex = replace_cables(network, [cable.model_copy(update={"coordinates": coords})])
    result = connect(with_vertex, cable_id, node_id, insert_at, id_factory=id_factory)
    if not result.success:
        return EditResult(
            network=network,
            success=False,
            reason=result.reason,
            message=result.message,
        )
    return result
