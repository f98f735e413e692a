"""Visual fault locator: flood a light source through the splice graph.

Light crosses box connections in both directions, fusion sides onto each
other, a splitter input onto every output and any output back onto the
input. Splitters are a visualisation shortcut here, not a power model.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from fibernet.schemas.network import NetworkState
from fibernet.services.network.ports import cable_id_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LitSet:
    lit_ports: frozenset[str] = field(default_factory=frozenset)
    lit_cables: frozenset[str] = field(default_factory=frozenset)
    lit_connections: frozenset[str] = field(default_factory=frozenset)


@dataclass
class _PortGraph:
    # port -> [(connection id, other port)]
    connections: dict[str, list[tuple[str, str]]] = field(default_factory=dict)
    splitter_outputs: dict[str, list[str]] = field(default_factory=dict)
    splitter_inputs: dict[str, list[str]] = field(default_factory=dict)
    fusion_sides: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, network: NetworkState) -> _PortGraph:
        graph = cls()
        for box in network.boxes():
            for connection in box.connections:
                graph.connections.setdefault(connection.source_id, []).append(
                    (connection.id, connection.target_id)
                )
                graph.connections.setdefault(connection.target_id, []).append(
                    (connection.id, connection.source_id)
                )
            for splitter in box.splitters:
                graph.splitter_outputs.setdefault(splitter.input_port_id, []).extend(
                    splitter.output_port_ids
                )
                for output_id in splitter.output_port_ids:
                    graph.splitter_inputs.setdefault(output_id, []).append(
                        splitter.input_port_id
                    )
            for fusion in box.fusions:
                graph.fusion_sides.setdefault(fusion.side_a, []).append(fusion.side_b)
                graph.fusion_sides.setdefault(fusion.side_b, []).append(fusion.side_a)
        return graph


def lit_set(network: NetworkState, source_port_id: str) -> LitSet:
    """Breadth-first flood from ``source_port_id``.

    An unknown source lights only itself (and its cable, for a fiber port).
    """
    graph = _PortGraph.build(network)
    lit_ports = {source_port_id}
    lit_cables: set[str] = set()
    lit_connections: set[str] = set()
    queue = deque([source_port_id])

    def visit(port_id: str) -> None:
        if port_id not in lit_ports:
            lit_ports.add(port_id)
            queue.append(port_id)

    while queue:
        current = queue.popleft()
        cable_id = cable_id_of(current)
        if cable_id is not None:
            lit_cables.add(cable_id)
        for connection_id, other in graph.connections.get(current, ()):
            lit_connections.add(connection_id)
            visit(other)
        for output_id in graph.splitter_outputs.get(current, ()):
            visit(output_id)
        for input_id in graph.splitter_inputs.get(current, ()):
            visit(input_id)
        for other_side in graph.fusion_sides.get(current, ()):
            visit(other_side)

    logger.debug(
        "VFL from %s lit %d port(s), %d cable(s), %d connection(s)",
        source_port_id,
        len(lit_ports),
        len(lit_cables),
        len(lit_connections),
    )
    return LitSet(
        lit_ports=frozenset(lit_ports),
        lit_cables=frozenset(lit_cables),
        lit_connections=frozenset(lit_connections),
    )
