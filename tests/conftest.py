import pytest

from fibernet.schemas.network import FiberConnection, Fusion

from tests.builders import LAT_STEP, make_box, make_cable, make_network


@pytest.fixture()
def two_box_network():
    """Box A at the origin, box B ~222 m north, cable1 bound A -> B."""
    return make_network(
        nodes=[make_box("A", 0.0), make_box("B", LAT_STEP)],
        cables=[make_cable("cable1", [(0.0,), (LAT_STEP,)], "A", "B", fiber_count=12)],
    )


@pytest.fixture()
def three_point_network():
    """Loose three-point cable running north with box C beside its middle vertex."""
    return make_network(
        nodes=[make_box("C", LAT_STEP / 2, 0.001)],
        cables=[
            make_cable(
                "cable1",
                [(0.0,), (LAT_STEP / 2,), (LAT_STEP,)],
                fiber_count=24,
                technical_reserve=20.0,
            )
        ],
    )


@pytest.fixture()
def chain_network():
    """A -> B -> C with cable1 and cable2 fused fiber 0 to fiber 0 inside B."""
    box_b = make_box(
        "B",
        LAT_STEP,
        fusions=[Fusion(id="fus1", name="F-1")],
        connections=[
            FiberConnection(id="c1", source_id="cable1-fiber-0", target_id="fus1-a"),
            FiberConnection(id="c2", source_id="fus1-b", target_id="cable2-fiber-0"),
        ],
    )
    return make_network(
        nodes=[make_box("A", 0.0), box_b, make_box("C", 2 * LAT_STEP)],
        cables=[
            make_cable("cable1", [(0.0,), (LAT_STEP,)], "A", "B"),
            make_cable("cable2", [(LAT_STEP,), (2 * LAT_STEP,)], "B", "C"),
        ],
    )
