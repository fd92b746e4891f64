"""Turn a BPM series into a natural-language image prompt.

Summary statistics of the series are classified into bands, each band maps to
a small vocabulary, and one word per band is drawn at random before being
substituted into a fixed template.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping, Protocol, TypeVar

import numpy as np

from .errors import EmptySeriesError, NonFiniteSeriesError
from .schema import Color

LevelBand = Literal["low", "mid", "high"]
RangeBand = Literal["small", "large"]

B = TypeVar("B", bound=str)

_LOGGER = logging.getLogger("heartart.prompt")

ENERGY_THRESHOLDS: tuple[tuple[float, LevelBand], ...] = ((75.0, "low"), (110.0, "mid"))
VOLATILITY_THRESHOLDS: tuple[tuple[float, LevelBand], ...] = ((5.0, "low"), (15.0, "mid"))
RANGE_THRESHOLDS: tuple[tuple[float, RangeBand], ...] = ((20.0, "small"),)

ENERGY_WORDS: Mapping[LevelBand, tuple[str, ...]] = MappingProxyType(
    {
        "low": ("serene", "tranquil", "gentle", "calm", "peaceful", "ethereal"),
        "mid": ("balanced", "flowing", "harmonious", "steady", "rhythmic"),
        "high": ("vibrant", "energetic", "intense", "powerful", "dynamic", "passionate"),
    }
)
VOLATILITY_WORDS: Mapping[LevelBand, tuple[str, ...]] = MappingProxyType(
    {
        "low": ("smooth", "soft", "blended", "seamless", "hazy", "misty"),
        "mid": ("textured", "layered", "swirling", "interwoven", "undulating"),
        "high": ("chaotic", "explosive", "turbulent", "sharp", "fragmented", "crystalline"),
    }
)
RANGE_WORDS: Mapping[RangeBand, tuple[str, ...]] = MappingProxyType(
    {
        "small": ("subtle gradients", "monochromatic whispers", "nuanced tones"),
        "large": ("high-contrast depths", "dramatic tonal shifts", "a broad spectrum of light"),
    }
)

PROMPT_TEMPLATE = (
    "An ultra-high quality, abstract image. A fluid and organic masterpiece, "
    "dominated by the essence of {color}. "
    "It captures a {energy} feeling with {volatility} forms. "
    "A strong, blown-out flash of pure light radiates from the center, creating {range}. "
    "The entire composition is hazy and dreamlike. "
    "There are absolutely no lines, text, or numbers visible. "
    "Focus on pure color, light, and emotion."
)


class WordChooser(Protocol):
    def choice(self, seq: Sequence[str]) -> str: ...


@dataclass(frozen=True, slots=True)
class SeriesStats:
    count: int
    mean: float
    minimum: float
    maximum: float
    range: float
    std_dev: float


@dataclass(frozen=True, slots=True)
class MoodBands:
    energy: LevelBand
    volatility: LevelBand
    range: RangeBand


def band_for(value: float, thresholds: Sequence[tuple[float, B]], otherwise: B) -> B:
    """Return the band of the first ``value < limit`` threshold, else ``otherwise``."""
    for limit, band in thresholds:
        if value < limit:
            return band
    return otherwise


def compute_stats(series: Sequence[float]) -> SeriesStats:
    if len(series) == 0:
        raise EmptySeriesError("Cannot describe an empty BPM series.")
    values = np.asarray(series, dtype=np.float64)
    if not np.isfinite(values).all():
        raise NonFiniteSeriesError("BPM series must only contain finite values.")
    mean = float(values.mean())
    minimum = float(values.min())
    maximum = float(values.max())
    # Population deviation (ddof=0).
    std_dev = float(np.sqrt(np.mean((values - mean) ** 2)))
    return SeriesStats(
        count=int(values.size),
        mean=mean,
        minimum=minimum,
        maximum=maximum,
        range=maximum - minimum,
        std_dev=std_dev,
    )


def classify(stats: SeriesStats) -> MoodBands:
    return MoodBands(
        energy=band_for(stats.mean, ENERGY_THRESHOLDS, "high"),
        volatility=band_for(stats.std_dev, VOLATILITY_THRESHOLDS, "high"),
        range=band_for(stats.range, RANGE_THRESHOLDS, "large"),
    )


def synthesize(
    series: Sequence[float],
    color: Color,
    *,
    chooser: WordChooser | None = None,
) -> str:
    """Build the image prompt for ``series`` in the given palette color."""
    rng: WordChooser = chooser if chooser is not None else random.Random()
    stats = compute_stats(series)
    bands = classify(stats)
    _LOGGER.debug("Series stats %s classified as %s", stats, bands)
    return PROMPT_TEMPLATE.format(
        color=color.lower(),
        energy=rng.choice(ENERGY_WORDS[bands.energy]),
        volatility=rng.choice(VOLATILITY_WORDS[bands.volatility]),
        range=rng.choice(RANGE_WORDS[bands.range]),
    )
