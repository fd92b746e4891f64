from __future__ import annotations

import base64
import binascii
import logging
import warnings
from collections.abc import Mapping
from typing import Any

from json_repair import repair_json
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..config import DEFAULT_IMAGE_MODEL, DEFAULT_MAX_POINTS, DEFAULT_TEXT_MODEL
from ..errors import (
    ExtractionError,
    ImageGenerateError,
    InvalidApiKeyError,
    LLMInferenceError,
    ModelNotAvailableError,
    ProviderError,
)
from ..models import EXTERNAL_PREFIX
from ..schema import BpmSeries, BpmSeriesPayload, FiniteBpm

IMAGE_SIZE = "1024x1024"
_INVALID_KEY_MARKER = "API key not valid"
_LOGGER = logging.getLogger("heartart.providers.litellm")
_RESERVED_LITELLM_KWARGS = frozenset(
    {"model", "messages", "prompt", "response_format", "api_key", "n"}
)
_BARE_SERIES = TypeAdapter(list[FiniteBpm])
_litellm_logging_configured = False

EXTRACTION_PROMPT = """You are an expert data analyst. Your task is to analyze the following CSV \
content, identify the column that represents heart rate data (BPM or beats per minute), and \
extract the last {max_points} numerical values from that column. The data might not be labeled \
"BPM" explicitly; use your best judgment to find the most likely column (e.g., "heart_rate", \
"value", etc.). If there are fewer than {max_points} data points, return all of them. The output \
must be a JSON object of the form {{"bpm": [numbers]}}. Do not include any other text or \
explanation.

CSV content:
---
{csv}
---
"""


def _configure_litellm_logging(litellm_module: Any) -> None:
    global _litellm_logging_configured
    if _litellm_logging_configured:
        return
    _litellm_logging_configured = True
    try:
        litellm_module.turn_off_message_logging = True
        litellm_module.suppress_debug_info = True
    except Exception as exc:
        _LOGGER.info("LiteLLM logging config failed: %s", exc, exc_info=True)
    warnings.filterwarnings("ignore", message="Pydantic serializer warnings")


def _content_snippet(content: str, limit: int = 200) -> str:
    cleaned = content.strip()
    if len(cleaned) <= limit:
        return cleaned
    return f"{cleaned[:limit]}..."


def _provider_error(exc: Exception, context: str) -> ProviderError:
    if _INVALID_KEY_MARKER in str(exc):
        return InvalidApiKeyError()
    return LLMInferenceError(f"{context}: {exc}")


def parse_series_payload(content: str) -> BpmSeries:
    """Accept ``{"bpm": [...]}`` or a bare JSON array of numbers."""
    try:
        return BpmSeriesPayload.model_validate_json(content).bpm
    except ValidationError:
        return _BARE_SERIES.validate_json(content)


class _LiteLLMRequest(BaseModel):
    model: str
    api_key: str | None = None


class LiteLLMAdapter:
    """LiteLLM wrapper implementing both the extraction and image protocols."""

    def __init__(
        self,
        text_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        *,
        api_key: str | None = None,
        max_points: int = DEFAULT_MAX_POINTS,
        image_size: str = IMAGE_SIZE,
        litellm_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self._text_model = text_model.removeprefix(EXTERNAL_PREFIX)
        self._image_model = image_model.removeprefix(EXTERNAL_PREFIX)
        self._api_key = api_key
        self._max_points = max_points
        self._image_size = image_size
        self._litellm_kwargs = dict(litellm_kwargs or {})
        if self._api_key is None:
            _LOGGER.debug("No API key provided; letting LiteLLM read from env vars.")
        invalid_keys = _RESERVED_LITELLM_KWARGS.intersection(self._litellm_kwargs)
        if invalid_keys:
            keys = ", ".join(sorted(invalid_keys))
            raise ProviderError(f"litellm_kwargs cannot override: {keys}")

    @property
    def text_model(self) -> str:
        return self._text_model

    @property
    def image_model(self) -> str:
        return self._image_model

    def _request(self, model: str) -> dict[str, Any]:
        request = _LiteLLMRequest(model=model, api_key=self._api_key or None).model_dump(
            exclude_none=True
        )
        request.update(self._litellm_kwargs)
        return request

    async def extract_series(self, text: str) -> BpmSeries:
        try:
            import litellm
            from litellm import acompletion
        except ImportError as exc:
            _LOGGER.warning("LiteLLM not installed: %s", exc)
            raise ModelNotAvailableError("litellm is not installed") from exc

        _configure_litellm_logging(litellm)
        prompt = EXTRACTION_PROMPT.format(max_points=self._max_points, csv=text)
        messages = [{"role": "user", "content": prompt}]

        try:
            response: Any = await acompletion(
                messages=messages,
                response_format=BpmSeriesPayload,
                **self._request(self._text_model),
            )
        except Exception as exc:
            _LOGGER.warning("LiteLLM extraction request failed: %s", exc, exc_info=True)
            raise _provider_error(exc, "Failed to analyze CSV file") from exc

        try:
            raw_content = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise ExtractionError("LiteLLM response missing choices") from exc
        if not isinstance(raw_content, str) or not raw_content.strip():
            raise ExtractionError("Failed to analyze CSV file: model returned empty content")

        content = raw_content.strip()
        try:
            series = parse_series_payload(content)
        except ValidationError:
            try:
                series = parse_series_payload(repair_json(content))
            except ValidationError as exc:
                snippet = _content_snippet(content) or "<empty>"
                _LOGGER.warning("LiteLLM returned invalid BPM JSON: %s", snippet)
                raise ExtractionError(
                    "Failed to analyze CSV file: AI model did not return a valid array "
                    f"of numbers ({snippet})"
                ) from exc

        if not series:
            raise ExtractionError(
                "Failed to analyze CSV file: No BPM data could be extracted from the file."
            )
        return series[-self._max_points :]

    async def generate_image(self, prompt: str) -> bytes:
        try:
            import litellm
            from litellm import aimage_generation
        except ImportError as exc:
            _LOGGER.warning("LiteLLM not installed: %s", exc)
            raise ModelNotAvailableError("litellm is not installed") from exc

        _configure_litellm_logging(litellm)
        try:
            response: Any = await aimage_generation(
                prompt=prompt,
                n=1,
                size=self._image_size,
                response_format="b64_json",
                **self._request(self._image_model),
            )
        except Exception as exc:
            _LOGGER.warning("LiteLLM image request failed: %s", exc, exc_info=True)
            raise _provider_error(exc, "Image generation failed") from exc

        images = getattr(response, "data", None) or []
        if not images:
            raise ImageGenerateError("Image generation failed. No images were returned.")
        encoded = getattr(images[0], "b64_json", None)
        if not isinstance(encoded, str) or not encoded:
            raise ImageGenerateError("Image generation failed. The image had no data.")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageGenerateError("Image generation failed. Invalid image data.") from exc

    async def aclose(self) -> None:
        try:
            import litellm
        except ImportError as exc:
            _LOGGER.info("LiteLLM not installed; skipping async close: %s", exc)
            return
        close_fn: Any = getattr(litellm, "aclose", None)
        if close_fn is None:
            close_fn = getattr(litellm, "close_litellm_async_clients", None)
        if close_fn is None:
            return
        try:
            await close_fn()
        except Exception as exc:
            _LOGGER.warning("LiteLLM close failed: %s", exc, exc_info=True)
