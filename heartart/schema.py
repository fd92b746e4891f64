"""Shared types for BPM series, palette colors and provider payloads."""

from __future__ import annotations

import math
from typing import Annotated, Literal, get_args

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictFloat

from .errors import InvalidColorError

Color = Literal["Blue", "Green", "Red", "Yellow", "Purple", "Orange", "Pink"]
COLORS: tuple[Color, ...] = get_args(Color)
DEFAULT_COLOR: Color = "Blue"

BpmSeries = list[float]

_COLOR_LOOKUP: dict[str, Color] = {color.lower(): color for color in COLORS}


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("bpm values must be finite numbers")
    return value


FiniteBpm = Annotated[StrictFloat, AfterValidator(_require_finite)]


def parse_color(value: str) -> Color:
    """Return the palette color matching ``value`` regardless of case."""
    color = _COLOR_LOOKUP.get(value.strip().lower())
    if color is None:
        choices = ", ".join(COLORS)
        raise InvalidColorError(f"Unknown color {value!r}; expected one of: {choices}")
    return color


class BpmSeriesPayload(BaseModel):
    """Structured response requested from a text model during extraction."""

    bpm: list[FiniteBpm] = Field(
        description="Heart-rate samples in beats per minute, oldest first.",
    )

    model_config = ConfigDict(extra="ignore")
