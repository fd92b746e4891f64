from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from heartart.config import Settings
from heartart.errors import (
    ExtractionError,
    InvalidApiKeyError,
    MissingApiKeyError,
    MissingBpmColumnError,
    ProviderError,
    ProviderTimeoutError,
)
from heartart.models import (
    ExternalModelSpec,
    FallbackExtractor,
    LocalCsvExtractor,
    resolve_extractor,
)
from heartart.providers.litellm import LiteLLMAdapter


class _FailingExtractor:
    def __init__(self) -> None:
        self.closed = False

    async def extract_series(self, text: str) -> list[float]:
        raise ExtractionError("model said no")

    async def aclose(self) -> None:
        self.closed = True


class _KeyErrorExtractor:
    def __init__(self, exc: ProviderError) -> None:
        self._exc = exc

    async def extract_series(self, text: str) -> list[float]:
        raise self._exc


class _HangingExtractor:
    async def extract_series(self, text: str) -> list[float]:
        await asyncio.sleep(10)
        return []


class _FixedExtractor:
    async def extract_series(self, text: str) -> list[float]:
        return [99.0]


def test_resolve_local_extractor() -> None:
    assert isinstance(resolve_extractor("local"), LocalCsvExtractor)


def test_resolve_external_prefix_wraps_fallback() -> None:
    extractor = resolve_extractor(
        "external:gemini/gemini-2.5-flash", settings=Settings(local_fallback=True)
    )
    assert isinstance(extractor, FallbackExtractor)
    assert isinstance(extractor._primary, LiteLLMAdapter)
    assert extractor._primary.text_model == "gemini/gemini-2.5-flash"


def test_resolve_external_spec_without_fallback() -> None:
    spec = ExternalModelSpec(model="gemini/gemini-2.5-flash", api_key="k")
    extractor = resolve_extractor(spec, settings=Settings(local_fallback=False, max_points=5))
    assert isinstance(extractor, LiteLLMAdapter)


def test_resolve_passes_custom_extractor_through() -> None:
    custom = _FixedExtractor()
    assert resolve_extractor(custom) is custom


def test_resolve_unknown_choice() -> None:
    with pytest.raises(ProviderError):
        resolve_extractor("quantum")


def test_external_spec_is_frozen() -> None:
    spec = ExternalModelSpec(model="gemini/gemini-2.5-flash")
    with pytest.raises(ValidationError):
        spec.model = "other"  # type: ignore[misc]


@pytest.mark.asyncio
async def test_local_extractor_parses_bpm_column() -> None:
    assert await LocalCsvExtractor().extract_series("BPM\n60\n61\n") == [60.0, 61.0]


@pytest.mark.asyncio
async def test_fallback_uses_local_parse_on_provider_error() -> None:
    primary = _FailingExtractor()
    extractor = FallbackExtractor(primary=primary, fallback=LocalCsvExtractor())

    assert await extractor.extract_series("bpm\n72\n74\n") == [72.0, 74.0]

    await extractor.aclose()
    assert primary.closed


@pytest.mark.asyncio
async def test_fallback_surfaces_local_error() -> None:
    extractor = FallbackExtractor(primary=_FailingExtractor(), fallback=LocalCsvExtractor())
    with pytest.raises(MissingBpmColumnError):
        await extractor.extract_series("heart_rate\n72\n")


@pytest.mark.asyncio
async def test_fallback_prefers_primary() -> None:
    extractor = FallbackExtractor(primary=_FixedExtractor(), fallback=LocalCsvExtractor())
    assert await extractor.extract_series("not even csv") == [99.0]


@pytest.mark.asyncio
async def test_fallback_chains_primary_error_when_local_parse_fails() -> None:
    extractor = FallbackExtractor(primary=_FailingExtractor(), fallback=LocalCsvExtractor())
    with pytest.raises(MissingBpmColumnError) as excinfo:
        await extractor.extract_series("time,heart_rate\n0,70\n")
    assert isinstance(excinfo.value.__cause__, ExtractionError)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [InvalidApiKeyError(), MissingApiKeyError("API Key is not configured.")],
)
async def test_fallback_reraises_api_key_errors(error: ProviderError) -> None:
    extractor = FallbackExtractor(
        primary=_KeyErrorExtractor(error), fallback=LocalCsvExtractor()
    )
    with pytest.raises(type(error)) as excinfo:
        await extractor.extract_series("time,heart_rate\n0,70\n")
    assert excinfo.value is error


@pytest.mark.asyncio
async def test_fallback_reraises_invalid_key_even_with_bpm_column() -> None:
    extractor = FallbackExtractor(
        primary=_KeyErrorExtractor(InvalidApiKeyError()), fallback=LocalCsvExtractor()
    )
    with pytest.raises(InvalidApiKeyError, match="Your API Key is invalid"):
        await extractor.extract_series("bpm\n70\n")


@pytest.mark.asyncio
async def test_fallback_runs_when_primary_hangs() -> None:
    extractor = FallbackExtractor(
        primary=_HangingExtractor(), fallback=LocalCsvExtractor(), timeout=0.05
    )
    assert await extractor.extract_series("bpm\n70\n71\n") == [70.0, 71.0]


@pytest.mark.asyncio
async def test_fallback_call_timeout_overrides_default() -> None:
    extractor = FallbackExtractor(primary=_HangingExtractor(), fallback=LocalCsvExtractor())
    assert await extractor.extract_series("bpm\n70\n", timeout=0.05) == [70.0]


@pytest.mark.asyncio
async def test_fallback_timeout_is_chained_when_local_parse_fails() -> None:
    extractor = FallbackExtractor(
        primary=_HangingExtractor(), fallback=LocalCsvExtractor(), timeout=0.05
    )
    with pytest.raises(MissingBpmColumnError) as excinfo:
        await extractor.extract_series("heart_rate\n70\n")
    assert isinstance(excinfo.value.__cause__, ProviderTimeoutError)


def test_resolve_external_fallback_uses_settings_timeout() -> None:
    extractor = resolve_extractor(
        "external:gemini/gemini-2.5-flash",
        settings=Settings(local_fallback=True, timeout=7.5),
    )
    assert isinstance(extractor, FallbackExtractor)
    assert extractor._timeout == 7.5
