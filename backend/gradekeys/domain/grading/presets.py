"""
Grading presets

Standard boundary sets that new grading keys start from:
- German 1-6: the classic school scale, 1 is best
- German 0-15: upper-secondary points scale, 15 is best
"""

from __future__ import annotations

import math
from dataclasses import replace

from .models import GradeBoundary, GradingPreset, RoundingRule, RoundingType


GERMAN_1_6_PRESET = GradingPreset(
    id="german-1-6-standard",
    name="German 1-6 (Standard)",
    description="Standard German grading system (1-6)",
    system="german-1-6",
    boundaries=(
        GradeBoundary(grade=1, display_value="1", min_percentage=92),
        GradeBoundary(grade=2, display_value="2", min_percentage=81),
        GradeBoundary(grade=3, display_value="3", min_percentage=70),
        GradeBoundary(grade=4, display_value="4", min_percentage=60),
        GradeBoundary(grade=5, display_value="5", min_percentage=50),
        GradeBoundary(grade=6, display_value="6", min_percentage=0),
    ),
    default_rounding=RoundingRule(RoundingType.NEAREST, 1),
)


GERMAN_0_15_PRESET = GradingPreset(
    id="german-0-15-standard",
    name="German 0-15 (Advanced)",
    description="German grading system for upper-level classes (0-15 points)",
    system="german-0-15",
    boundaries=tuple(
        GradeBoundary(grade=g, display_value=str(g), min_percentage=pct)
        for g, pct in [
            (15, 95), (14, 90), (13, 85), (12, 80), (11, 75), (10, 70),
            (9, 65), (8, 60), (7, 55), (6, 50), (5, 0),
        ]
    ),
    default_rounding=RoundingRule(RoundingType.NEAREST, 0),
)


# Preset registry
PRESETS: dict[str, GradingPreset] = {
    GERMAN_1_6_PRESET.id: GERMAN_1_6_PRESET,
    GERMAN_0_15_PRESET.id: GERMAN_0_15_PRESET,
}


def get_preset(preset_id: str) -> GradingPreset:
    """Get a grading preset by id"""
    if preset_id not in PRESETS:
        raise ValueError(f"Unknown preset: {preset_id}. Valid options: {list(PRESETS.keys())}")
    return PRESETS[preset_id]


def get_all_presets() -> list[dict]:
    """Summaries of all registered presets"""
    return [
        {
            "id": preset.id,
            "name": preset.name,
            "description": preset.description,
            "system": preset.system,
        }
        for preset in PRESETS.values()
    ]


def generate_percentage_boundaries(preset: GradingPreset) -> tuple[GradeBoundary, ...]:
    """Preset boundaries with missing percentage limits filled in (0 / 100)."""
    return tuple(
        replace(
            b,
            min_percentage=b.min_percentage if b.min_percentage is not None else 0,
            max_percentage=b.max_percentage if b.max_percentage is not None else 100,
        )
        for b in preset.boundaries
    )


def generate_points_boundaries(
    preset: GradingPreset, total_points: float
) -> tuple[GradeBoundary, ...]:
    """Preset boundaries with point limits derived from *total_points*."""
    result = []
    for b in generate_percentage_boundaries(preset):
        result.append(
            replace(
                b,
                min_points=math.ceil(b.min_percentage * total_points / 100),
                max_points=math.ceil(b.max_percentage * total_points / 100),
            )
        )
    return tuple(result)


__all__ = [
    "GERMAN_1_6_PRESET",
    "GERMAN_0_15_PRESET",
    "PRESETS",
    "get_preset",
    "get_all_presets",
    "generate_percentage_boundaries",
    "generate_points_boundaries",
]
