from __future__ import annotations

import random
import re
from collections.abc import Sequence

import pytest

from heartart.errors import EmptySeriesError, NonFiniteSeriesError
from heartart.prompt import (
    ENERGY_THRESHOLDS,
    ENERGY_WORDS,
    RANGE_WORDS,
    VOLATILITY_WORDS,
    MoodBands,
    SeriesStats,
    band_for,
    classify,
    compute_stats,
    synthesize,
)
from heartart.schema import COLORS


class FirstChoice:
    def choice(self, seq: Sequence[str]) -> str:
        return seq[0]


class LastChoice:
    def choice(self, seq: Sequence[str]) -> str:
        return seq[-1]


def _stats(*, mean: float = 90.0, std_dev: float = 10.0, range_: float = 30.0) -> SeriesStats:
    return SeriesStats(
        count=10,
        mean=mean,
        minimum=mean - range_ / 2,
        maximum=mean + range_ / 2,
        range=range_,
        std_dev=std_dev,
    )


_SLOTS = re.compile(
    r"It captures a (?P<energy>.+?) feeling with (?P<volatility>.+?) forms\. "
    r".*creating (?P<range>.+?)\. "
)


def _slots(prompt: str) -> dict[str, str]:
    match = _SLOTS.search(prompt)
    assert match is not None, prompt
    return match.groupdict()


def test_compute_stats_uses_population_deviation() -> None:
    stats = compute_stats([70, 72, 71, 69, 70])
    assert stats.count == 5
    assert stats.mean == pytest.approx(70.4)
    assert stats.minimum == 69
    assert stats.maximum == 72
    assert stats.range == 3
    assert stats.std_dev == pytest.approx(1.0198039, rel=1e-6)


def test_compute_stats_single_sample() -> None:
    stats = compute_stats([88.0])
    assert stats.std_dev == 0.0
    assert stats.range == 0.0


def test_compute_stats_rejects_empty_series() -> None:
    with pytest.raises(EmptySeriesError):
        compute_stats([])


@pytest.mark.parametrize("series", [[70.0, float("inf")], [float("nan"), 70.0]])
def test_compute_stats_rejects_non_finite_values(series: list[float]) -> None:
    with pytest.raises(NonFiniteSeriesError):
        compute_stats(series)


def test_synthesize_rejects_empty_series() -> None:
    with pytest.raises(ValueError):
        synthesize([], "Blue")


def test_band_for_first_match_wins() -> None:
    assert band_for(10.0, ENERGY_THRESHOLDS, "high") == "low"
    assert band_for(80.0, ENERGY_THRESHOLDS, "high") == "mid"
    assert band_for(500.0, ENERGY_THRESHOLDS, "high") == "high"


def test_classify_calm_series() -> None:
    assert classify(compute_stats([70, 72, 71, 69, 70])) == MoodBands(
        energy="low", volatility="low", range="small"
    )


def test_classify_intense_series() -> None:
    assert classify(_stats(mean=120, std_dev=20, range_=50)) == MoodBands(
        energy="high", volatility="high", range="large"
    )


@pytest.mark.parametrize(
    ("stats", "field", "expected"),
    [
        (_stats(mean=75.0), "energy", "mid"),
        (_stats(mean=74.999), "energy", "low"),
        (_stats(mean=110.0), "energy", "high"),
        (_stats(std_dev=5.0), "volatility", "mid"),
        (_stats(std_dev=4.999), "volatility", "low"),
        (_stats(std_dev=15.0), "volatility", "high"),
        (_stats(range_=20.0), "range", "large"),
        (_stats(range_=19.999), "range", "small"),
    ],
)
def test_classify_thresholds(stats: SeriesStats, field: str, expected: str) -> None:
    assert getattr(classify(stats), field) == expected


def test_boundaries_from_real_series() -> None:
    # mean 75, std 5, range 10
    assert classify(compute_stats([70, 80])) == MoodBands(
        energy="mid", volatility="mid", range="small"
    )
    # mean 75, std 15, range 30
    assert classify(compute_stats([60, 90])).volatility == "high"
    assert classify(compute_stats([70, 90])).range == "large"


def test_synthesize_with_pinned_chooser() -> None:
    prompt = synthesize([70, 72, 71, 69, 70], "Purple", chooser=FirstChoice())
    assert "dominated by the essence of purple." in prompt
    assert "It captures a serene feeling with smooth forms." in prompt
    assert "creating subtle gradients." in prompt
    assert "no lines, text, or numbers visible" in prompt
    assert "flash of pure light radiates from the center" in prompt


def test_synthesize_high_bands_with_last_choice() -> None:
    prompt = synthesize([60, 100, 150, 180, 140], "Red", chooser=LastChoice())
    assert "passionate feeling with crystalline forms" in prompt
    assert "a broad spectrum of light" in prompt


@pytest.mark.parametrize("color", COLORS)
def test_synthesize_lowercases_color(color: str) -> None:
    prompt = synthesize([80, 85, 90], color)  # type: ignore[arg-type]
    assert color.lower() in prompt
    assert color not in prompt


def test_synthesize_picks_one_word_per_band() -> None:
    slots = _slots(synthesize([70, 72, 71, 69, 70], "Blue", chooser=random.Random(3)))
    assert slots["energy"] in ENERGY_WORDS["low"]
    assert slots["volatility"] in VOLATILITY_WORDS["low"]
    assert slots["range"] in RANGE_WORDS["small"]


def test_synthesize_repeated_calls_stay_in_same_bands() -> None:
    series = [100, 104, 98, 101]
    rng = random.Random(11)
    prompts = {synthesize(series, "Green", chooser=rng) for _ in range(25)}
    assert len(prompts) > 1
    for prompt in prompts:
        slots = _slots(prompt)
        assert slots["energy"] in ENERGY_WORDS["mid"]
        assert slots["volatility"] in VOLATILITY_WORDS["low"]
        assert slots["range"] in RANGE_WORDS["small"]


def test_synthesize_seeded_random_is_reproducible() -> None:
    series = [88, 95, 102]
    first = synthesize(series, "Orange", chooser=random.Random(42))
    second = synthesize(series, "Orange", chooser=random.Random(42))
    assert first == second


def test_vocabulary_is_read_only() -> None:
    with pytest.raises(TypeError):
        ENERGY_WORDS["low"] = ("loud",)  # type: ignore[index]
