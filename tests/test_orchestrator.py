"""Tests for cache-first resolution and the deferred provider pass."""

import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from helpers import make_config, seed_cache

from vocabweave.cache import TranslationCache
from vocabweave.config import ProviderSettings
from vocabweave.orchestrator import LanguagePair, TranslationOrchestrator
from vocabweave.stats import UsageStats
from vocabweave.storage import MemoryStore
from vocabweave.translators import GeminiTranslator
from vocabweave.translators.mock_translator import MockTranslator
from vocabweave.types import Provenance

QUOTA_TEXT = (
    "Plants use sunlight, water and carbon to make glucose and oxygen in leaves, roots and cells with energy from chlorophyll."
)
QUOTA_WORDS = ["plants", "sunlight", "water", "carbon", "glucose", "oxygen", "leaves", "roots", "cells", "energy"]
PHOTOSYNTHESIS_TEXT = "The photosynthesis process is complex"
ECHO_TEXT = "Photosynthesis turns sunlight into chemical energy for plants."


def _response(*entries: tuple[str, str, str]) -> str:
    return json.dumps(
        [{"original": o, "translation": t, "phonetic": "", "difficulty": d} for o, t, d in entries],
        ensure_ascii=False,
    )


class TestLanguagePair(unittest.TestCase):
    """Test suite for the process mode rules."""

    def test_directions(self) -> None:
        """1. Both: Foreign text maps to the native language, native text to the learning language."""
        orchestrator = TranslationOrchestrator(make_config(), TranslationCache())

        assert orchestrator.language_pair(PHOTOSYNTHESIS_TEXT) == LanguagePair("en", "zh-CN")
        assert orchestrator.language_pair("植物通过光合作用获得能量。") == LanguagePair("zh-CN", "en")

    def test_modes_rule_out_text(self) -> None:
        """2. Modes: native-only skips foreign text and target-only skips native text."""
        native_only = TranslationOrchestrator(make_config(process_mode="native-only"), TranslationCache())
        target_only = TranslationOrchestrator(make_config(process_mode="target-only"), TranslationCache())

        assert native_only.language_pair(PHOTOSYNTHESIS_TEXT) is None
        assert target_only.language_pair("植物通过光合作用获得能量。") is None
        assert target_only.language_pair(PHOTOSYNTHESIS_TEXT) == LanguagePair("en", "zh-CN")


class TestResolve(unittest.IsolatedAsyncioTestCase):
    """Test suite for TranslationOrchestrator.resolve."""

    async def test_quota_limits_immediate_and_deferred(self) -> None:
        """1. Quota: With the quota met by the cache, the deferred pass adds at most one term."""
        cache = TranslationCache()
        seed_cache(cache, {word: (f"<{word}>", "B2") for word in QUOTA_WORDS})
        translator = MockTranslator(responses=_response(("chlorophyll", "叶绿素", "C1")))
        orchestrator = TranslationOrchestrator(make_config(intensity="low"), cache, translator)

        result = orchestrator.resolve(QUOTA_TEXT)

        assert len(result.immediate) == 4  # noqa: PLR2004
        assert all(r.provenance is Provenance.CACHE for r in result.immediate)
        assert result.deferred is not None
        deferred = await result.deferred
        assert len(deferred) <= 1
        assert not {r.key for r in deferred} & {r.key for r in result.immediate}

        _, prompt = translator.calls[0]
        assert "Pick about 1 terms" in prompt
        assert "never return more than 8" in prompt
        assert cache.peek("chlorophyll", "en", "zh-CN") is not None

    async def test_short_uncached_text_reaches_provider(self) -> None:
        """2. Provider: A short sentence with only uncached terms is sent and its result re-anchored."""
        translator = MockTranslator(responses=_response(("photosynthesis", "光合作用", "B2")))
        stats = UsageStats(MemoryStore())
        cache = TranslationCache()
        orchestrator = TranslationOrchestrator(make_config(), cache, translator, stats)

        result = orchestrator.resolve(PHOTOSYNTHESIS_TEXT)

        assert result.immediate == []
        assert result.deferred is not None
        (replacement,) = await result.deferred
        assert replacement.original == "photosynthesis"
        assert replacement.translation == "光合作用"
        assert replacement.position == 4  # noqa: PLR2004
        assert replacement.provenance is Provenance.PROVIDER
        assert "Pick about 12 terms" in translator.calls[0][1]
        assert cache.peek("photosynthesis", "en", "zh-CN") is not None
        assert stats.snapshot.total_words == 1
        assert stats.snapshot.cache_misses == 1

    async def test_learned_and_easy_words_are_filtered(self) -> None:
        """3. Filters: Learned words and words below the difficulty floor are never substituted."""
        cache = TranslationCache()
        seed_cache(cache, {"energy": ("能量", "B2"), "plants": ("植物", "A2"), "sunlight": ("阳光", "B1")})
        config = make_config(learned_words=[{"original": "Energy"}])
        orchestrator = TranslationOrchestrator(config, cache)

        result = orchestrator.resolve("Green plants store energy from sunlight.")

        assert [r.original for r in result.immediate] == ["sunlight"]
        assert result.deferred is None

    async def test_provider_difficulty_filter_still_caches(self) -> None:
        """4. Caching: Entries below the floor are cached but not substituted."""
        translator = MockTranslator(responses=_response(("process", "过程", "A1"), ("photosynthesis", "光合作用", "B2")))
        cache = TranslationCache()
        orchestrator = TranslationOrchestrator(make_config(), cache, translator)

        result = orchestrator.resolve(PHOTOSYNTHESIS_TEXT)
        assert result.deferred is not None
        deferred = await result.deferred

        assert [r.original for r in deferred] == ["photosynthesis"]
        assert cache.peek("process", "en", "zh-CN") is not None

    async def test_provider_error_resolves_to_empty(self) -> None:
        """5. Failure: A provider error leaves the immediate results and an empty deferred list."""
        cache = TranslationCache()
        seed_cache(cache, {"process": ("过程", "B2")})
        orchestrator = TranslationOrchestrator(make_config(), cache, MockTranslator(return_error=True))

        with self.assertLogs("vocabweave.orchestrator", level="WARNING"):
            result = orchestrator.resolve(PHOTOSYNTHESIS_TEXT)
            assert result.deferred is not None
            assert await result.deferred == []

        assert [r.original for r in result.immediate] == ["process"]

    async def test_without_provider_results_are_cache_only(self) -> None:
        """6. No provider: Only cached terms are returned and nothing is deferred."""
        cache = TranslationCache()
        seed_cache(cache, {"photosynthesis": ("光合作用", "C1")})
        orchestrator = TranslationOrchestrator(make_config(), cache)

        result = orchestrator.resolve(PHOTOSYNTHESIS_TEXT)

        assert [r.translation for r in result.immediate] == ["光合作用"]
        assert result.deferred is None

    async def test_tiny_reduced_text_is_not_sent(self) -> None:
        """7. Threshold: Reduced text below the provider minimum is not sent."""
        translator = MockTranslator()
        orchestrator = TranslationOrchestrator(make_config(), TranslationCache(), translator)

        result = orchestrator.resolve("Short phrase.")

        assert result.deferred is None
        assert translator.calls == []

    async def test_cjk_phrase_found_by_substring(self) -> None:
        """8. CJK: Cached phrases longer than the lookup windows are still found in native text."""
        cache = TranslationCache()
        seed_cache(cache, {"叶绿体色素": ("chloroplast pigment", "C1")}, source="zh-CN", target="en")
        orchestrator = TranslationOrchestrator(make_config(), cache)

        result = orchestrator.resolve("植物的叶绿体色素吸收阳光。")

        assert [r.original for r in result.immediate] == ["叶绿体色素"]
        assert result.immediate[0].position == 3  # noqa: PLR2004

    async def test_immediate_hits_are_counted(self) -> None:
        """9. Stats: Immediate cache hits are recorded in the background."""
        cache = TranslationCache()
        seed_cache(cache, {"photosynthesis": ("光合作用", "C1")})
        stats = UsageStats(MemoryStore())
        orchestrator = TranslationOrchestrator(make_config(), cache, None, stats)

        orchestrator.resolve(PHOTOSYNTHESIS_TEXT)
        await orchestrator.wait_background()

        assert stats.snapshot.cache_hits == 1

    async def test_provider_echoes_do_not_use_up_the_cap(self) -> None:
        """10. Echoes: Provider entries repeating immediate terms leave room for new ones."""
        cache = TranslationCache()
        seed_cache(cache, {"energy": ("能量", "B2"), "sunlight": ("阳光", "B2")})
        translator = MockTranslator(
            responses=_response(("energy", "能量", "B2"), ("sunlight", "阳光", "B2"), ("photosynthesis", "光合作用", "B2")),
        )
        orchestrator = TranslationOrchestrator(make_config(intensity="low"), cache, translator)

        result = orchestrator.resolve(ECHO_TEXT)
        assert {r.key for r in result.immediate} == {"energy", "sunlight"}
        assert result.deferred is not None
        deferred = await result.deferred

        assert [r.key for r in deferred] == ["photosynthesis"]

    @patch("vocabweave.translators.gemini_translator.genai.Client")
    async def test_unreachable_gemini_resolves_to_empty(self, mock_client_class: MagicMock) -> None:
        """11. Transport: A Gemini connection failure resolves the deferred pass to an empty list."""
        mock_client_class.return_value.aio.models.generate_content = AsyncMock(
            side_effect=httpx.ConnectError("unreachable"),
        )
        translator = GeminiTranslator(ProviderSettings(api_key="key"))
        orchestrator = TranslationOrchestrator(make_config(), TranslationCache(), translator)

        with self.assertLogs("vocabweave.orchestrator", level="WARNING"):
            result = orchestrator.resolve(PHOTOSYNTHESIS_TEXT)
            assert result.deferred is not None
            assert await result.deferred == []


class TestTranslateSpecificWords(unittest.IsolatedAsyncioTestCase):
    """Test suite for TranslationOrchestrator.translate_specific_words."""

    async def test_cache_first_then_provider(self) -> None:
        """1. Mixed: Cached words skip the provider and only requested words are returned."""
        cache = TranslationCache()
        seed_cache(cache, {"energy": ("能量", "B1")})
        translator = MockTranslator(responses=_response(("entropy", "熵", "C1"), ("unrelated", "无关", "B2")))
        orchestrator = TranslationOrchestrator(make_config(), cache, translator)

        results = await orchestrator.translate_specific_words(["energy", "entropy", "  "])

        assert {r.key: r.provenance for r in results} == {"energy": Provenance.CACHE, "entropy": Provenance.PROVIDER}
        (_, prompt) = translator.calls[0]
        assert "entropy" in prompt.split("## Terms")[1]
        assert "energy" not in prompt.split("## Terms")[1]
        assert cache.peek("entropy", "en", "zh-CN") is not None

    async def test_provider_failure_keeps_cached(self) -> None:
        """2. Failure: When the provider fails only cached translations come back."""
        cache = TranslationCache()
        seed_cache(cache, {"energy": ("能量", "B1")})
        orchestrator = TranslationOrchestrator(make_config(), cache, MockTranslator(return_error=True))

        results = await orchestrator.translate_specific_words(["energy", "entropy"])

        assert [r.original for r in results] == ["energy"]

    async def test_empty_request(self) -> None:
        """3. Empty: Blank word lists never reach the provider."""
        translator = MockTranslator()
        orchestrator = TranslationOrchestrator(make_config(), TranslationCache(), translator)

        assert await orchestrator.translate_specific_words(["", " "]) == []
        assert translator.calls == []

    @patch("vocabweave.translators.gemini_translator.genai.Client")
    async def test_unreachable_gemini_keeps_cached(self, mock_client_class: MagicMock) -> None:
        """4. Transport: A Gemini connection failure still returns the cached words."""
        mock_client_class.return_value.aio.models.generate_content = AsyncMock(
            side_effect=httpx.ReadTimeout("timed out"),
        )
        cache = TranslationCache()
        seed_cache(cache, {"energy": ("能量", "B1")})
        orchestrator = TranslationOrchestrator(make_config(), cache, GeminiTranslator(ProviderSettings(api_key="key")))

        with self.assertLogs("vocabweave.orchestrator", level="WARNING"):
            results = await orchestrator.translate_specific_words(["energy", "entropy"])

        assert [r.original for r in results] == ["energy"]
