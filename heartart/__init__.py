from __future__ import annotations

from .config import Settings, resolve_api_key
from .csv_parser import extract_bpm, read_bpm_csv
from .errors import (
    CsvParseError,
    EmptyFileError,
    EmptySeriesError,
    HeartArtError,
    MissingBpmColumnError,
    MissingHeaderOrDataError,
    NoValidDataError,
    ProviderError,
)
from .models import (
    ExternalModelSpec,
    FallbackExtractor,
    ImageGenerator,
    LocalCsvExtractor,
    SeriesExtractor,
    resolve_extractor,
)
from .pipeline import ArtResult, generate_art, render_art
from .prompt import (
    MoodBands,
    SeriesStats,
    WordChooser,
    band_for,
    classify,
    compute_stats,
    synthesize,
)
from .schema import COLORS, BpmSeries, Color, parse_color

__all__ = [
    "COLORS",
    "ArtResult",
    "BpmSeries",
    "Color",
    "CsvParseError",
    "EmptyFileError",
    "EmptySeriesError",
    "ExternalModelSpec",
    "FallbackExtractor",
    "HeartArtError",
    "ImageGenerator",
    "LocalCsvExtractor",
    "MissingBpmColumnError",
    "MissingHeaderOrDataError",
    "MoodBands",
    "NoValidDataError",
    "ProviderError",
    "SeriesExtractor",
    "SeriesStats",
    "Settings",
    "WordChooser",
    "band_for",
    "classify",
    "compute_stats",
    "extract_bpm",
    "generate_art",
    "parse_color",
    "read_bpm_csv",
    "render_art",
    "resolve_api_key",
    "resolve_extractor",
    "synthesize",
]

__version__ = "0.1.0"
