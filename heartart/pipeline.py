"""Wire extraction, prompt synthesis and image generation together."""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, ConfigDict

from .config import Settings
from .errors import EmptyFileError
from .models import FallbackExtractor, ImageGenerator, SeriesExtractor, with_timeout
from .prompt import WordChooser, synthesize
from .schema import BpmSeries, Color

IMAGE_MIME_TYPE = "image/jpeg"
_LOGGER = logging.getLogger("heartart.pipeline")


class ArtResult(BaseModel):
    series: BpmSeries
    color: Color
    prompt: str
    image: bytes
    mime_type: str = IMAGE_MIME_TYPE

    model_config = ConfigDict(frozen=True)


async def generate_art(
    csv_text: str,
    color: Color,
    *,
    extractor: SeriesExtractor,
    image_model: ImageGenerator,
    chooser: WordChooser | None = None,
    timeout: float | None = None,
) -> ArtResult:
    """Extract a BPM series from ``csv_text`` and render it as an image."""
    if not csv_text.strip():
        raise EmptyFileError("The selected CSV file is empty.")
    limit = timeout if timeout is not None else Settings.from_env().timeout

    if isinstance(extractor, FallbackExtractor):
        # Applies the limit per attempt so a hung primary still falls back.
        series = await extractor.extract_series(csv_text, timeout=limit)
    else:
        series = await with_timeout(extractor.extract_series(csv_text), limit, "BPM extraction")
    _LOGGER.info("BPMs data for image: %s", series)

    prompt = synthesize(series, color, chooser=chooser)
    _LOGGER.info("Generated prompt for image: %s", prompt)

    image = await with_timeout(image_model.generate_image(prompt), limit, "Image generation")
    return ArtResult(series=series, color=color, prompt=prompt, image=image)


def render_art(
    csv_text: str,
    color: Color,
    *,
    extractor: SeriesExtractor,
    image_model: ImageGenerator,
    chooser: WordChooser | None = None,
    timeout: float | None = None,
) -> ArtResult:
    return asyncio.run(
        generate_art(
            csv_text,
            color,
            extractor=extractor,
            image_model=image_model,
            chooser=chooser,
            timeout=timeout,
        )
    )
