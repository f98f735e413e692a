"""Fiber color codes used when generating splice connections."""

from __future__ import annotations

import enum


class ColorStandard(enum.Enum):
    abnt = "ABNT"
    eia598 = "EIA598"


# 1-green 2-yellow 3-white 4-blue 5-red 6-violet 7-brown 8-pink 9-black 10-gray 11-orange 12-aqua
ABNT_COLORS = [
    "#22c55e",
    "#eab308",
    "#ffffff",
    "#3b82f6",
    "#ef4444",
    "#a855f7",
    "#78350f",
    "#ec4899",
    "#000000",
    "#9ca3af",
    "#f97316",
    "#22d3ee",
]

# 1-blue 2-orange 3-green 4-brown 5-slate 6-white 7-red 8-black 9-yellow 10-violet 11-rose 12-aqua
EIA_COLORS = [
    "#3b82f6",
    "#f97316",
    "#22c55e",
    "#78350f",
    "#9ca3af",
    "#ffffff",
    "#ef4444",
    "#000000",
    "#eab308",
    "#a855f7",
    "#ec4899",
    "#22d3ee",
]


def fiber_color(index: int, standard: ColorStandard = ColorStandard.abnt) -> str:
    """Color of the 0-based fiber ``index``; the palette repeats every 12 fibers."""
    palette = EIA_COLORS if standard is ColorStandard.eia598 else ABNT_COLORS
    return palette[index % len(palette)]
