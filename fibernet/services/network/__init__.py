"""Fiber network engine services.

This package provides the topology and optical-path engine:
- Geometry helpers and typed port references
- Auto-snap of loose cable ends
- Cable connection, split and geometry edits
- Node/cable lifecycle and splice-tray edits
- Light propagation (VFL) and OTDR trace queries

Every operation takes a NetworkState and returns a new value; inputs are
never mutated.
"""

from fibernet.services.network._common import (
    EditReason,
    EditResult,
    sync_input_cable_ids,
)
from fibernet.services.network.cables import (
    connect,
    connect_at_nearest_point,
    disconnect,
    split_cable,
    update_cable_geometry,
)
from fibernet.services.network.otdr import (
    TraceHop,
    TraceOutcome,
    TraceResult,
    trace,
)
from fibernet.services.network.snap import (
    CableEnd,
    SnapBinding,
    SnapResult,
    auto_snap,
)
from fibernet.services.network.splicing import (
    add_connection,
    add_fusion,
    add_splitter,
    auto_splice,
    remove_connection,
    remove_fusion,
    remove_splitter,
)
from fibernet.services.network.topology import (
    add_cable,
    add_node,
    delete_cable,
    delete_node,
    move_node,
    update_cable_status,
    update_node_status,
)
from fibernet.services.network.vfl import LitSet, lit_set

__all__ = [
    # Results
    "EditReason",
    "EditResult",
    "SnapBinding",
    "SnapResult",
    "CableEnd",
    "LitSet",
    "TraceHop",
    "TraceOutcome",
    "TraceResult",
    # Engines
    "auto_snap",
    "connect",
    "connect_at_nearest_point",
    "disconnect",
    "split_cable",
    "update_cable_geometry",
    "lit_set",
    "trace",
    # Lifecycle
    "add_node",
    "add_cable",
    "move_node",
    "delete_node",
    "delete_cable",
    "update_node_status",
    "update_cable_status",
    "sync_input_cable_ids",
    # Splice trays
    "add_splitter",
    "remove_splitter",
    "add_fusion",
    "remove_fusion",
    "add_connection",
    "remove_connection",
    "auto_splice",
]
