"""Tests for cable connection, split and geometry edits."""

import logging

from fibernet.schemas.network import FiberConnection
from fibernet.services.network import (
    EditReason,
    connect,
    connect_at_nearest_point,
    disconnect,
    update_cable_geometry,
)
from tests.builders import LAT_STEP, at, make_box, make_cable, make_network, make_pole

MID = LAT_STEP / 2


def _split_id():
    return "cable1-b"


def test_connect_interior_point_splits_cable(three_point_network):
    """Connecting box C at point 1 splits cable1 into two halves meeting at C."""
    result = connect(three_point_network, "cable1", "C", 1, id_factory=_split_id)

    assert result.success
    assert result.cable_ids == ("cable1", "cable1-b")
    network = result.network
    box_c = network.get_node("C")
    first = network.get_cable("cable1")
    second = network.get_cable("cable1-b")

    assert [c.id for c in network.cables] == ["cable1", "cable1-b"]
    assert first.coordinates == [at(0.0), box_c.coordinates]
    assert second.coordinates == [box_c.coordinates, at(LAT_STEP)]
    assert first.to_node_id == "C"
    assert first.from_node_id is None
    assert second.from_node_id == "C"
    assert second.to_node_id is None
    assert first.name == "cable1 (A)"
    assert second.name == "cable1 (B)"
    assert first.fiber_count == second.fiber_count == 24
    assert first.technical_reserve == second.technical_reserve == 20.0
    assert box_c.input_cable_ids == ["cable1", "cable1-b"]


def test_split_does_not_mutate_input(three_point_network):
    before = three_point_network.model_dump()

    connect(three_point_network, "cable1", "C", 1, id_factory=_split_id)

    assert three_point_network.model_dump() == before


def test_split_names_do_not_stack_suffixes():
    network = make_network(
        nodes=[make_box("C", MID, 0.001)],
        cables=[make_cable("cable1", [(0.0,), (MID,), (LAT_STEP,)], name="Trunk (A)")],
    )

    result = connect(network, "cable1", "C", 1, id_factory=_split_id)

    assert result.network.get_cable("cable1").name == "Trunk (A)"
    assert result.network.get_cable("cable1-b").name == "Trunk (B)"


def test_split_rewires_far_end_splices():
    far_box = make_box(
        "B",
        LAT_STEP,
        connections=[FiberConnection(id="c1", source_id="cable1-fiber-0", target_id="olt-1")],
    )
    network = make_network(
        nodes=[make_box("A", 0.0), far_box, make_box("C", MID, 0.001)],
        cables=[make_cable("cable1", [(0.0,), (MID,), (LAT_STEP,)], "A", "B")],
    )

    result = connect(network, "cable1", "C", 1, id_factory=_split_id)

    network = result.network
    assert network.get_node("B").connections[0].source_id == "cable1-b-fiber-0"
    assert network.get_node("A").input_cable_ids == ["cable1"]
    assert network.get_node("B").input_cable_ids == ["cable1-b"]
    assert network.get_cable("cable1-b").to_node_id == "B"
    assert network.get_cable("cable1").from_node_id == "A"


def test_split_moves_pole_link_to_second_half():
    network = make_network(
        nodes=[make_box("C", MID / 2, 0.001), make_pole("P", 1.5 * MID, linked_cable_ids=["cable1"])],
        cables=[make_cable("cable1", [(0.0,), (MID / 2,), (1.5 * MID,), (LAT_STEP,)])],
    )

    result = connect(network, "cable1", "C", 1, id_factory=_split_id)

    assert result.network.get_node("P").linked_cable_ids == ["cable1-b"]


def test_split_rejects_existing_new_id(three_point_network):
    result = connect(three_point_network, "cable1", "C", 1, id_factory=lambda: "cable1")

    assert not result.success
    assert result.reason is EditReason.duplicate_id
    assert result.network is three_point_network


def test_connect_end_point_binds_box():
    network = make_network(
        nodes=[make_box("A", 0.0, 0.0001)],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)])],
    )

    result = connect(network, "cable1", "A", 0)

    cable = result.network.get_cable("cable1")
    assert result.success
    assert cable.from_node_id == "A"
    assert cable.coordinates[0] == at(0.0, 0.0001)
    assert result.network.get_node("A").input_cable_ids == ["cable1"]


def test_connect_end_point_moves_binding_from_previous_box(two_box_network):
    network = make_network(
        nodes=[*two_box_network.nodes, make_box("D", LAT_STEP, 0.001)],
        cables=two_box_network.cables,
    )

    result = connect(network, "cable1", "D", 1)

    assert result.network.get_cable("cable1").to_node_id == "D"
    assert result.network.get_node("B").input_cable_ids == []
    assert result.network.get_node("D").input_cable_ids == ["cable1"]


def test_connect_rejects_duplicate_binding(two_box_network, caplog):
    with caplog.at_level(logging.INFO, logger="fibernet"):
        result = connect(two_box_network, "cable1", "A", 0)

    assert not result.success
    assert result.reason is EditReason.already_connected
    assert result.network is two_box_network
    assert "Network edit rejected (already_connected)" in caplog.text


def test_connect_rejects_bad_input(two_box_network):
    assert connect(two_box_network, "missing", "A", 0).reason is EditReason.cable_not_found
    assert connect(two_box_network, "cable1", "missing", 0).reason is EditReason.node_not_found
    assert connect(two_box_network, "cable1", "A", 5).reason is EditReason.invalid_point_index
    assert connect(two_box_network, "cable1", "A", -1).reason is EditReason.invalid_point_index

    malformed = make_network(
        nodes=[make_box("A", 0.0)], cables=[make_cable("stub", [(0.0,)])]
    )
    assert connect(malformed, "stub", "A", 0).reason is EditReason.malformed_cable


def test_connect_pole_anchors_vertex_without_binding(three_point_network):
    network = make_network(
        nodes=[*three_point_network.nodes, make_pole("P", MID, 0.0002)],
        cables=three_point_network.cables,
    )

    result = connect(network, "cable1", "P", 1)

    cable = result.network.get_cable("cable1")
    assert result.success
    assert cable.coordinates[1] == at(MID, 0.0002)
    assert cable.from_node_id is None and cable.to_node_id is None
    assert len(result.network.cables) == 1
    assert result.network.get_node("P").linked_cable_ids == ["cable1"]

    again = connect(result.network, "cable1", "P", 1)
    assert again.reason is EditReason.already_connected


def test_disconnect_box_keeps_geometry(two_box_network):
    result = disconnect(two_box_network, "cable1", "B")

    cable = result.network.get_cable("cable1")
    assert result.success
    assert cable.to_node_id is None
    assert cable.coordinates == two_box_network.get_cable("cable1").coordinates
    assert result.network.get_node("B").input_cable_ids == []
    assert result.network.get_node("A").input_cable_ids == ["cable1"]


def test_disconnect_pole_and_not_connected():
    network = make_network(
        nodes=[make_pole("P", 0.0, linked_cable_ids=["cable1"]), make_box("A", LAT_STEP)],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)])],
    )

    result = disconnect(network, "cable1", "P")

    assert result.network.get_node("P").linked_cable_ids == []
    assert disconnect(network, "cable1", "A").reason is EditReason.not_connected


def test_geometry_edit_beyond_threshold_clears_binding(two_box_network, caplog):
    """Dragging an end ~1 m away unbinds it; dragging it back does not rebind."""
    moved = [at(0.0), at(LAT_STEP + 0.00001)]

    with caplog.at_level(logging.INFO, logger="fibernet"):
        result = update_cable_geometry(two_box_network, "cable1", moved)

    cable = result.network.get_cable("cable1")
    assert result.success
    assert result.disconnected_node_ids == ("B",)
    assert cable.to_node_id is None
    assert cable.from_node_id == "A"
    assert result.network.get_node("B").input_cable_ids == []
    assert "binding cleared" in caplog.text

    back = update_cable_geometry(result.network, "cable1", [at(0.0), at(LAT_STEP)])

    assert back.network.get_cable("cable1").to_node_id is None
    assert back.disconnected_node_ids == ()


def test_geometry_edit_within_threshold_keeps_binding(two_box_network):
    nudged = [at(0.0), at(LAT_STEP + 0.0000005)]

    result = update_cable_geometry(two_box_network, "cable1", nudged)

    cable = result.network.get_cable("cable1")
    assert cable.to_node_id == "B"
    assert cable.coordinates[-1] == result.network.get_node("B").coordinates
    assert result.disconnected_node_ids == ()


def test_geometry_edit_collapses_duplicates(two_box_network):
    coords = [at(0.0), at(1e-10), at(MID), at(LAT_STEP)]

    result = update_cable_geometry(two_box_network, "cable1", coords)

    assert result.network.get_cable("cable1").coordinates == [at(0.0), at(MID), at(LAT_STEP)]


def test_geometry_edit_rejects_degenerate_polyline(two_box_network):
    result = update_cable_geometry(two_box_network, "cable1", [at(0.0), at(1e-10)])

    assert result.reason is EditReason.malformed_cable
    assert result.network is two_box_network


def test_geometry_edit_snaps_other_cables():
    network = make_network(
        nodes=[make_box("A", 0.0)],
        cables=[
            make_cable("loose", [(0.0001,), (LAT_STEP,)]),
            make_cable("edited", [(0.0, 0.01), (LAT_STEP, 0.01)]),
        ],
    )

    result = update_cable_geometry(
        network, "edited", [at(0.0, 0.0001), at(LAT_STEP, 0.01)], snap_radius_m=30
    )

    assert result.network.get_cable("loose").from_node_id == "A"
    assert result.network.get_cable("edited").from_node_id is None


def test_connect_at_nearest_point_inserts_vertex():
    network = make_network(
        nodes=[make_box("C", MID, 0.0001)],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)])],
    )

    result = connect_at_nearest_point(network, "cable1", "C", id_factory=_split_id)

    first = result.network.get_cable("cable1")
    second = result.network.get_cable("cable1-b")
    assert result.success
    assert first.coordinates == [at(0.0), at(MID, 0.0001)]
    assert second.coordinates == [at(MID, 0.0001), at(LAT_STEP)]


def test_connect_at_nearest_point_reuses_vertex(three_point_network):
    network = make_network(
        nodes=[make_box("D", MID)],
        cables=three_point_network.cables,
    )

    result = connect_at_nearest_point(network, "cable1", "D", id_factory=_split_id)

    assert len(result.network.get_cable("cable1").coordinates) == 2
    assert len(result.network.get_cable("cable1-b").coordinates) == 2


def test_connect_at_nearest_point_failure_keeps_original():
    network = make_network(
        nodes=[make_pole("P", MID, 0.0001, linked_cable_ids=["cable1"])],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)])],
    )

    result = connect_at_nearest_point(network, "cable1", "P")

    assert result.reason is EditReason.already_connected
    assert result.network is network


def test_connect_pole_rejects_bound_end(two_box_network):
    """A pole cannot pull an end away from the box it is bound to."""
    network = make_network(
        nodes=[*two_box_network.nodes, make_pole("P", 0.0001)],
        cables=two_box_network.cables,
    )

    result = connect(network, "cable1", "P", 0)

    assert result.reason is EditReason.invalid_endpoint
    assert result.network is network
    assert result.network.get_cable("cable1").coordinates[0] == at(0.0)


def test_connect_pole_anchors_free_end():
    network = make_network(
        nodes=[make_pole("P", 0.0001)],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)])],
    )

    result = connect(network, "cable1", "P", 0)

    assert result.success
    assert result.network.get_cable("cable1").coordinates[0] == at(0.0001)


def test_split_keeps_pole_on_split_vertex_linked():
    network = make_network(
        nodes=[make_box("C", MID, 0.001), make_pole("P", MID, linked_cable_ids=["cable1"])],
        cables=[make_cable("cable1", [(0.0,), (MID,), (LAT_STEP,)])],
    )

    result = connect(network, "cable1", "C", 1, id_factory=_split_id)

    assert result.network.get_node("P").linked_cable_ids == ["cable1"]
