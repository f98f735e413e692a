"""Tests for visual fault locator propagation."""

import logging

from fibernet.schemas.network import FiberConnection, Fusion, Splitter
from fibernet.services.network import lit_set
from tests.builders import LAT_STEP, make_box, make_cable, make_network


def _splitter_network():
    box = make_box(
        "A",
        0.0,
        splitters=[
            Splitter(
                id="spl1",
                name="S1",
                type="1:2",
                input_port_id="spl1-in",
                output_port_ids=["spl1-out-0", "spl1-out-1"],
            )
        ],
        connections=[
            FiberConnection(id="feed", source_id="olt-1", target_id="spl1-in"),
            FiberConnection(id="d0", source_id="spl1-out-0", target_id="drop0-fiber-0"),
            FiberConnection(id="d1", source_id="spl1-out-1", target_id="drop1-fiber-0"),
        ],
    )
    return make_network(
        nodes=[box],
        cables=[
            make_cable("drop0", [(0.0,), (LAT_STEP,)], "A"),
            make_cable("drop1", [(0.0,), (-LAT_STEP,)], "A"),
        ],
    )


def test_light_crosses_fusions_and_connections(chain_network):
    result = lit_set(chain_network, "cable1-fiber-0")

    assert result.lit_ports == {"cable1-fiber-0", "fus1-a", "fus1-b", "cable2-fiber-0"}
    assert result.lit_cables == {"cable1", "cable2"}
    assert result.lit_connections == {"c1", "c2"}


def test_propagation_is_symmetric(chain_network):
    forward = lit_set(chain_network, "cable1-fiber-0")
    backward = lit_set(chain_network, "cable2-fiber-0")

    assert forward == backward


def test_splitter_input_lights_every_output():
    result = lit_set(_splitter_network(), "olt-1")

    assert {"spl1-in", "spl1-out-0", "spl1-out-1"} <= result.lit_ports
    assert result.lit_cables == {"drop0", "drop1"}
    assert result.lit_connections == {"feed", "d0", "d1"}


def test_splitter_output_reaches_input_and_siblings():
    """Any output lights the input, which then fans out to the other outputs."""
    result = lit_set(_splitter_network(), "drop0-fiber-0")

    assert "olt-1" in result.lit_ports
    assert "drop1" in result.lit_cables


def test_unspliced_fiber_lights_only_itself(chain_network):
    result = lit_set(chain_network, "cable1-fiber-5")

    assert result.lit_ports == {"cable1-fiber-5"}
    assert result.lit_cables == {"cable1"}
    assert result.lit_connections == frozenset()


def test_unknown_source_lights_only_source(chain_network):
    assert lit_set(chain_network, "nowhere").lit_ports == {"nowhere"}
    assert lit_set(chain_network, "nowhere").lit_cables == frozenset()
    assert lit_set(chain_network, "ghost-fiber-0").lit_cables == {"ghost"}


def test_propagation_terminates_on_cycles(caplog):
    box_a = make_box(
        "A",
        0.0,
        fusions=[Fusion(id="f1")],
        connections=[
            FiberConnection(id="x1", source_id="ring-fiber-0", target_id="f1-a"),
            FiberConnection(id="x2", source_id="f1-b", target_id="ring-fiber-1"),
        ],
    )
    box_b = make_box(
        "B",
        LAT_STEP,
        connections=[
            FiberConnection(id="y1", source_id="ring-fiber-1", target_id="ring-fiber-0"),
        ],
    )
    network = make_network(
        nodes=[box_a, box_b],
        cables=[make_cable("ring", [(0.0,), (LAT_STEP,)], "A", "B")],
    )

    with caplog.at_level(logging.DEBUG, logger="fibernet"):
        result = lit_set(network, "ring-fiber-0")

    assert result.lit_connections == {"x1", "x2", "y1"}
    assert "VFL from ring-fiber-0 lit 4 port(s)" in caplog.text
