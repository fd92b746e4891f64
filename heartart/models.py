from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Literal, Protocol, TypeGuard, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .csv_parser import extract_bpm
from .errors import (
    HeartArtError,
    InvalidApiKeyError,
    MissingApiKeyError,
    ProviderError,
    ProviderTimeoutError,
)
from .schema import BpmSeries

EXTERNAL_PREFIX = "external:"
LOCAL_CHOICE: Literal["local"] = "local"
_LOGGER = logging.getLogger("heartart.models")
_NO_FALLBACK = (InvalidApiKeyError, MissingApiKeyError)

T = TypeVar("T")


class SeriesExtractor(Protocol):
    async def extract_series(self, text: str) -> BpmSeries: ...


class ImageGenerator(Protocol):
    async def generate_image(self, prompt: str) -> bytes: ...


class ExternalModelSpec(BaseModel):
    model: str
    api_key: str | None = None
    litellm_kwargs: Mapping[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


ExtractorSpec = str | ExternalModelSpec | SeriesExtractor


class LocalCsvExtractor:
    """Offline extractor reading the literal ``BPM`` column."""

    async def extract_series(self, text: str) -> BpmSeries:
        return extract_bpm(text)


async def with_timeout(awaitable: Awaitable[T], timeout: float | None, step: str) -> T:
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        _LOGGER.warning("%s timed out after %.1fs", step, timeout)
        raise ProviderTimeoutError(f"{step} timed out after {timeout:g} seconds.") from exc


class FallbackExtractor:
    """Try ``primary`` first and parse locally when the provider fails.

    The primary call runs under its own ``timeout`` so a hung provider still
    reaches the fallback. Missing or invalid API keys are re-raised without
    falling back.
    """

    def __init__(
        self,
        *,
        primary: SeriesExtractor,
        fallback: SeriesExtractor,
        timeout: float | None = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._timeout = timeout

    async def extract_series(self, text: str, *, timeout: float | None = None) -> BpmSeries:
        limit = timeout if timeout is not None else self._timeout
        try:
            return await with_timeout(
                self._primary.extract_series(text), limit, "BPM extraction"
            )
        except _NO_FALLBACK:
            raise
        except ProviderError as exc:
            _LOGGER.warning(
                "Primary extractor failed (%s); falling back to local CSV parsing.",
                type(exc).__name__,
                exc_info=True,
            )
            primary_exc = exc
        try:
            return await with_timeout(
                self._fallback.extract_series(text), limit, "Fallback BPM extraction"
            )
        except HeartArtError as local_exc:
            raise local_exc from primary_exc

    async def aclose(self) -> None:
        for model in (self._primary, self._fallback):
            await aclose_model(model)


async def aclose_model(model: object) -> None:
    aclose = getattr(model, "aclose", None)
    if callable(aclose):
        result = aclose()
        if asyncio.iscoroutine(result):
            await result
        return
    close = getattr(model, "close", None)
    if callable(close):
        close()


def _is_extractor(obj: object) -> TypeGuard[SeriesExtractor]:
    return hasattr(obj, "extract_series")


def _build_external_adapter(
    model: str,
    *,
    api_key: str | None = None,
    litellm_kwargs: Mapping[str, Any] | None = None,
    settings: Settings | None = None,
) -> Any:
    from .providers.litellm import LiteLLMAdapter

    settings = settings or Settings.from_env()
    return LiteLLMAdapter(
        text_model=model,
        image_model=settings.image_model,
        api_key=api_key,
        max_points=settings.max_points,
        litellm_kwargs=litellm_kwargs,
    )


def _with_fallback(primary: SeriesExtractor, settings: Settings) -> SeriesExtractor:
    if settings.local_fallback:
        return FallbackExtractor(
            primary=primary, fallback=LocalCsvExtractor(), timeout=settings.timeout
        )
    return primary


def resolve_extractor(
    spec: ExtractorSpec,
    *,
    settings: Settings | None = None,
) -> SeriesExtractor:
    settings = settings or Settings.from_env()
    if isinstance(spec, ExternalModelSpec):
        primary = _build_external_adapter(
            spec.model.removeprefix(EXTERNAL_PREFIX),
            api_key=spec.api_key,
            litellm_kwargs=spec.litellm_kwargs,
            settings=settings,
        )
        return _with_fallback(primary, settings)

    if isinstance(spec, str):
        if spec == LOCAL_CHOICE:
            return LocalCsvExtractor()
        if spec.startswith(EXTERNAL_PREFIX):
            primary = _build_external_adapter(
                spec.removeprefix(EXTERNAL_PREFIX), settings=settings
            )
            return _with_fallback(primary, settings)
        raise ProviderError(f"Unknown extractor choice: {spec!r}")

    if _is_extractor(spec):
        return spec

    raise ProviderError(f"Unknown extractor choice: {spec!r}")
