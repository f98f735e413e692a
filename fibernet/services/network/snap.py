"""Auto-snap of loose cable ends onto nearby boxes."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from fibernet.config import settings
from fibernet.schemas.network import Cable, NetworkState
from fibernet.services.network._common import replace_cables, sync_input_cable_ids
from fibernet.services.network.geometry import distance_m, polyline_length_m

logger = logging.getLogger(__name__)


class CableEnd(enum.Enum):
    start = "start"
    end = "end"


@dataclass(frozen=True)
class SnapBinding:
    cable_id: str
    end: CableEnd
    node_id: str
    distance_m: float


@dataclass(frozen=True)
class SnapResult:
    network: NetworkState
    snapped_count: int
    bindings: tuple[SnapBinding, ...] = ()


def _is_snappable(cable: Cable) -> bool:
    return cable.is_well_formed and polyline_length_m(cable.coordinates) > 0


def _loose_ends(cable: Cable) -> list[CableEnd]:
    ends = []
    if cable.from_node_id is None:
        ends.append(CableEnd.start)
    if cable.to_node_id is None:
        ends.append(CableEnd.end)
    return ends


def _end_point(cable: Cable, end: CableEnd):
    return cable.coordinates[0] if end is CableEnd.start else cable.coordinates[-1]


def auto_snap(
    network: NetworkState,
    radius_m: float | None = None,
    *,
    exclude_cable_ids: Iterable[str] = (),
) -> SnapResult:
    """Bind loose cable ends to the nearest boxes within ``radius_m``.

    Candidate pairs are served nearest first and every end binds at most
    once per run. An end is left alone when the other end of the same cable
    is already bound to that box. Cables with fewer than two points or no
    length are skipped. Poles are never snap targets.
    """
    radius = settings.snap_distance_m if radius_m is None else radius_m
    excluded = set(exclude_cable_ids)
    boxes = network.boxes()

    candidates: list[tuple[float, str, CableEnd, str]] = []
    for cable in network.cables:
        if cable.id in excluded:
            continue
        if not _is_snappable(cable):
            logger.debug("Skipping malformed cable %s during auto-snap", cable.id)
            continue
        for end in _loose_ends(cable):
            point = _end_point(cable, end)
            for box in boxes:
                dist = distance_m(point, box.coordinates)
                if dist <= radius:
                    candidates.append((dist, cable.id, end, box.id))

    if not candidates:
        return SnapResult(network=network, snapped_count=0)

    candidates.sort(key=lambda item: (item[0], item[1], item[2].value, item[3]))
    box_coordinates = {box.id: box.coordinates for box in boxes}
    cables = {cable.id: cable for cable in network.cables}
    taken: set[tuple[str, CableEnd]] = set()
    bindings: list[SnapBinding] = []

    for dist, cable_id, end, box_id in candidates:
        if (cable_id, end) in taken:
            continue
        cable = cables[cable_id]
        if cable.is_bound_to(box_id):
            continue
        coords = list(cable.coordinates)
        if end is CableEnd.start:
            coords[0] = box_coordinates[box_id]
            update = {"coordinates": coords, "from_node_id": box_id}
        else:
            coords[-1] = box_coordinates[box_id]
            update = {"coordinates": coords, "to_node_id": box_id}
        cables[cable_id] = cable.model_copy(update=update)
        taken.add((cable_id, end))
        bindings.append(SnapBinding(cable_id, end, box_id, dist))

    if not bindings:
        return SnapResult(network=network, snapped_count=0)

    snapped = sync_input_cable_ids(replace_cables(network, cables.values()))
    logger.info("Auto-snap bound %d cable end(s) within %.2f m", len(bindings), radius)
    return SnapResult(network=snapped, snapped_count=len(bindings), bindings=tuple(bindings))
