"""Cache-first resolution of the terms to substitute in a piece of text."""

import asyncio
import logging
import math
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass
from typing import Any

from .cache import TranslationCache
from .config import VocabConfig
from .errors import ProviderError
from .language import (
    MIN_CJK_WORD_LENGTH,
    detect_language,
    extract_candidates,
    find_position,
    is_cjk,
    is_native_language,
    meets_length_rules,
    reconstruct_text_with_words,
)
from .parsing import parse_translations
from .prompts import SPECIFIC_WORDS_PROMPT_TEMPLATE, SYSTEM_PROMPT, VOCABULARY_PROMPT_TEMPLATE
from .stats import UsageStats
from .translators.base import BaseTranslator
from .types import CacheValue, ParsedTranslation, Provenance, Replacement, ResolveResult, is_difficulty_compatible

__all__ = ["LanguagePair", "TranslationOrchestrator"]

logger = logging.getLogger(__name__)

SPECIFIC_WORDS_MAX_TOKENS = 1000


@dataclass(frozen=True)
class LanguagePair:
    """Translation direction chosen for one text."""

    source: str
    target: str


class TranslationOrchestrator:
    """
    Resolves a text into replacements, cache hits first.

    `resolve` returns the cache hits at once and, when uncached terms remain,
    an `asyncio.Task` asking the provider for more. Without a provider every
    result is cache-only.
    """

    def __init__(
        self,
        config: VocabConfig,
        cache: TranslationCache,
        translator: BaseTranslator | None = None,
        stats: UsageStats | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.translator = translator
        self.stats = stats
        self._background: set[asyncio.Task[Any]] = set()

    def language_pair(self, text: str) -> LanguagePair | None:
        """Pick the translation direction for `text`, or None if the process mode rules it out."""
        detected = detect_language(text)
        native = is_native_language(detected, self.config.native_language)
        mode = self.config.process_mode
        if mode == "native-only" and not native:
            return None
        if mode == "target-only" and native:
            return None
        if native:
            return LanguagePair(self.config.native_language, self.config.target_language)
        return LanguagePair(detected, self.config.native_language)

    def _partition(self, text: str, pair: LanguagePair) -> tuple[list[tuple[str, CacheValue]], list[str]]:
        """Split the candidates of `text` into cache hits and uncached words."""
        hits: list[tuple[str, CacheValue]] = []
        uncached: list[str] = []
        seen: set[str] = set()
        for word in extract_candidates(text):
            value = self.cache.get(word, pair.source, pair.target)
            if value is None:
                uncached.append(word)
            elif word.lower() not in seen:
                hits.append((word, value))
                seen.add(word.lower())

        # CJK terms the sliding windows cannot produce, e.g. longer phrases.
        lowered = text.lower()
        for word, value in self.cache.entries_for_pair(pair.source, pair.target):
            if word in seen or not is_cjk(word) or len(word) < MIN_CJK_WORD_LENGTH:
                continue
            index = lowered.find(word)
            if index >= 0:
                hits.append((text[index : index + len(word)], value))
                seen.add(word)
        return hits, uncached

    def _eligible(self, word: str, difficulty: str, learned: set[str]) -> bool:
        return word.lower() not in learned and is_difficulty_compatible(difficulty, self.config.difficulty_level)

    @staticmethod
    def _from_cache(text: str, word: str, value: CacheValue) -> Replacement:
        return Replacement(
            original=word,
            translation=value.translation,
            phonetic=value.phonetic,
            difficulty=value.difficulty,
            position=max(find_position(text, word), 0),
            provenance=Provenance.CACHE,
        )

    def resolve(self, text: str) -> ResolveResult:
        """
        Resolve `text` into immediate cache hits and an optional deferred provider pass.

        The deferred task is created on the running loop and never raises:
        provider and parse failures resolve it to an empty list.
        """
        pair = self.language_pair(text)
        if pair is None:
            return ResolveResult(immediate=[])

        max_replacements = self.config.max_replacements
        learned = self.config.learned_set
        hits, uncached = self._partition(text, pair)

        eligible = [self._from_cache(text, word, value) for word, value in hits if self._eligible(word, value.difficulty, learned)]
        immediate = eligible[:max_replacements]
        if immediate:
            self._record_stats(cache_hits=len(immediate))

        if not uncached:
            return ResolveResult(immediate=immediate)
        if self.translator is None:
            logger.debug("No provider configured; %d uncached terms left untranslated.", len(uncached))
            return ResolveResult(immediate=immediate)

        reduced = reconstruct_text_with_words(text, uncached)
        if len(reduced.strip()) < self.config.scheduler.min_provider_text_length:
            return ResolveResult(immediate=immediate)

        cache_satisfied = len(immediate) >= max_replacements
        cap = 1 if cache_satisfied else max_replacements - len(immediate)
        target_count = 1 if cache_satisfied else max(cap, math.ceil(max_replacements * 1.5))

        deferred = asyncio.get_running_loop().create_task(
            self._resolve_deferred(text, reduced, pair, hits, immediate, cap=cap, target_count=target_count),
        )
        return ResolveResult(immediate=immediate, deferred=deferred)

    async def _resolve_deferred(
        self,
        text: str,
        reduced: str,
        pair: LanguagePair,
        hits: Sequence[tuple[str, CacheValue]],
        immediate: Sequence[Replacement],
        *,
        cap: int,
        target_count: int,
    ) -> list[Replacement]:
        max_replacements = self.config.max_replacements
        prompt = VOCABULARY_PROMPT_TEMPLATE.format(
            target_count=target_count,
            max_count=max_replacements * 2,
            source_lang=pair.source,
            target_lang=pair.target,
            learning_lang=self.config.target_language,
            text=reduced,
        )
        parsed = await self._request(prompt)
        if parsed is None:
            return []

        self._store(parsed, pair)
        accepted = [
            item
            for item in parsed
            if meets_length_rules(item.original) and is_difficulty_compatible(item.difficulty, self.config.difficulty_level)
        ]
        await self._record(new_words=len(accepted), cache_hits=len(hits), cache_misses=1)

        provider_results = [self._from_provider(text, item) for item in accepted]
        # The learned list may have grown while the request was in flight.
        learned = self.config.learned_set
        applied = {r.key for r in immediate}
        taken = applied | {r.key for r in provider_results}
        leftovers = [
            self._from_cache(text, word, value)
            for word, value in hits
            if word.lower() not in taken and self._eligible(word, value.difficulty, learned)
        ]
        # Echoes of terms already applied must not use up the cap.
        fresh = [r for r in provider_results if r.key not in learned and r.key not in applied]
        return (leftovers + fresh)[:cap]

    @staticmethod
    def _from_provider(text: str, item: ParsedTranslation) -> Replacement:
        # Provider offsets refer to the reduced text; re-anchor them on the full one.
        index = find_position(text, item.original)
        return Replacement(
            original=item.original,
            translation=item.translation,
            phonetic=item.phonetic,
            difficulty=item.difficulty,
            position=index if index >= 0 else (item.position or 0),
            provenance=Provenance.PROVIDER,
        )

    async def _request(self, prompt: str, *, max_tokens: int | None = None) -> list[ParsedTranslation] | None:
        """Send one prompt to the provider; None if the call failed."""
        if self.translator is None:
            return None
        try:
            content = await self.translator.complete(SYSTEM_PROMPT, prompt, max_tokens=max_tokens)
        except ProviderError as e:
            logger.warning("Provider request failed: %s", e)
            return None
        parsed = parse_translations(content)
        logger.debug("Provider returned %d usable entries.", len(parsed))
        return parsed

    def _store(self, parsed: Sequence[ParsedTranslation], pair: LanguagePair) -> None:
        """Cache every entry long enough to carry context, whatever its difficulty."""
        for item in parsed:
            if not meets_length_rules(item.original):
                continue
            self.cache.put(
                item.original,
                pair.source,
                pair.target,
                CacheValue(translation=item.translation, phonetic=item.phonetic, difficulty=item.difficulty),
            )

    async def translate_specific_words(self, words: Sequence[str]) -> list[Replacement]:
        """
        Translate an explicit list of words, cache first.

        Returns:
            Replacements for the requested words only, without positions. On a
            provider failure only the cached ones are returned.

        """
        words = [w for w in words if w and w.strip()]
        if not words:
            return []

        detected = detect_language(" ".join(words))
        if is_native_language(detected, self.config.native_language):
            pair = LanguagePair(self.config.native_language, self.config.target_language)
        else:
            pair = LanguagePair(detected, self.config.native_language)

        results: list[Replacement] = []
        uncached: list[str] = []
        for word in words:
            value = self.cache.get(word, pair.source, pair.target)
            if value is None:
                uncached.append(word)
            else:
                results.append(
                    Replacement(
                        original=word,
                        translation=value.translation,
                        phonetic=value.phonetic,
                        difficulty=value.difficulty,
                        provenance=Provenance.CACHE,
                    ),
                )

        if uncached:
            prompt = SPECIFIC_WORDS_PROMPT_TEMPLATE.format(
                source_lang=pair.source,
                target_lang=pair.target,
                learning_lang=self.config.target_language,
                words=", ".join(uncached),
            )
            parsed = await self._request(prompt, max_tokens=SPECIFIC_WORDS_MAX_TOKENS)
            if parsed is not None:
                self._store(parsed, pair)
                results.extend(
                    Replacement(
                        original=item.original,
                        translation=item.translation,
                        phonetic=item.phonetic,
                        difficulty=item.difficulty,
                        provenance=Provenance.PROVIDER,
                    )
                    for item in parsed
                )
                await self._record(new_words=len(parsed), cache_hits=len(results) - len(parsed), cache_misses=1)

        requested = {w.lower() for w in words}
        return [r for r in results if r.key in requested]

    async def _record(self, **counts: int) -> None:
        if self.stats is not None:
            await self.stats.record(**counts)

    def _record_stats(self, **counts: int) -> None:
        """Record statistics without holding up the caller."""
        if self.stats is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; statistics update dropped.")
            return
        self._spawn(loop, self._record(**counts))

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]) -> None:
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for fire-and-forget bookkeeping such as statistics updates."""
        while self._background:
            await asyncio.gather(*list(self._background))
