"""Script detection, tokenisation and text heuristics."""

from collections.abc import Iterable
from typing import Final

import regex

CJK_CHAR = regex.compile(r"[\u4e00-\u9fff]")
_CJK_RUN = regex.compile(r"[\u4e00-\u9fff]+")
_CJK_PHRASE = regex.compile(r"[\u4e00-\u9fff]{2,4}")
_JAPANESE_KANA = regex.compile(r"[\u3040-\u309f\u30a0-\u30ff]")
_HANGUL = regex.compile(r"[\uac00-\ud7af]")
_LATIN = regex.compile(r"[a-zA-Z]")
_LATIN_WORD = regex.compile(r"\b[a-zA-Z]{5,}\b", regex.ASCII)
_PURE_LATIN = regex.compile(r"^[a-zA-Z]+$")
_SENTENCE_SPLIT = regex.compile(r"[.!?]+")
_WHITESPACE = regex.compile(r"\s+")

_CODE_PATTERNS: Final = (
    regex.compile(r"^(const|let|var|function|class|import|export|return|if|else|for|while)\s"),
    regex.compile(r"[{}();]\s*$"),
    regex.compile(r"^\s*(//|/\*|\*|#)"),
    regex.compile(r"\w+\.\w+\("),
    regex.compile(r"console\."),
    regex.compile(r"https?://"),
)

MIN_LATIN_WORD_LENGTH: Final[int] = 5
MIN_CJK_WORD_LENGTH: Final[int] = 2
CJK_WINDOW_SIZES: Final[tuple[int, ...]] = (2, 3, 4)

STOP_WORDS: Final[frozenset[str]] = frozenset(
    """
    the a an is are was were be been being have has had do does did will would could should
    may might must shall can need dare ought used to of in for on with at by from as into
    through during before after above below between under again further then once here there
    when where why how all each few more most other some such no nor not only own same so than
    too very just and but if or because until while this that these those what which who whom
    i you he she it we they me him her us them my your his its our their
    """.split(),
)


def detect_language(text: str) -> str:
    """
    Guess the dominant language of a text from its script mix.

    Returns one of 'ja', 'ko', 'zh' or 'en'. Kana or Hangul win at a 10% share
    because both scripts mix with Han ideographs; Chinese needs 30%.
    """
    chinese = len(CJK_CHAR.findall(text))
    japanese = len(_JAPANESE_KANA.findall(text))
    korean = len(_HANGUL.findall(text))
    latin = len(_LATIN.findall(text))
    total = chinese + japanese + korean + latin or 1

    if japanese / total > 0.1:  # noqa: PLR2004
        return "ja"
    if korean / total > 0.1:  # noqa: PLR2004
        return "ko"
    if chinese / total > 0.3:  # noqa: PLR2004
        return "zh"
    return "en"


def is_native_language(detected: str, native: str) -> bool:
    """Match a detected language against the configured native language; zh covers zh-CN and zh-TW."""
    if detected == "zh" and native in ("zh-CN", "zh-TW"):
        return True
    return detected == native


def is_code_text(text: str) -> bool:
    """Heuristically decide whether a text is source code, a shell line or a URL."""
    stripped = text.strip()
    return any(pattern.search(stripped) for pattern in _CODE_PATTERNS)


def is_cjk(word: str) -> bool:
    """Check whether a word contains at least one CJK ideograph."""
    return CJK_CHAR.search(word) is not None


def is_pure_latin(word: str) -> bool:
    """Check whether a word is made of ASCII letters only."""
    return _PURE_LATIN.match(word) is not None


def meets_length_rules(word: str) -> bool:
    """Reject single ideographs and short Latin words, which carry too little context."""
    if is_cjk(word) and len(word) < MIN_CJK_WORD_LENGTH:
        return False
    return not (is_pure_latin(word) and len(word) < MIN_LATIN_WORD_LENGTH)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs into single spaces and strip the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def _cjk_windows(run: str) -> Iterable[str]:
    for size in CJK_WINDOW_SIZES:
        for start in range(len(run) - size + 1):
            yield run[start : start + size]


def extract_candidates(text: str) -> list[str]:
    """
    Extract candidate terms for cache lookup.

    Latin words of five or more letters that are not stop words, plus every
    2-4 character window of each contiguous CJK run. Duplicates are removed
    case-insensitively, keeping the first spelling seen.
    """
    found = [w for w in _LATIN_WORD.findall(text) if w.lower() not in STOP_WORDS]
    for run in _CJK_RUN.findall(text):
        found.extend(_cjk_windows(run))

    seen: set[str] = set()
    candidates: list[str] = []
    for word in found:
        lowered = word.lower()
        if lowered not in seen:
            seen.add(lowered)
            candidates.append(word)
    return candidates


def tokens_for_lookup(text: str) -> list[str]:
    """Tokens used to spot explicitly requested words inside a text node."""
    return _LATIN_WORD.findall(text) + _CJK_PHRASE.findall(text)


def find_position(text: str, word: str) -> int:
    """Return the first case-insensitive offset of `word` in `text`, or -1."""
    return text.lower().find(word.lower())


def reconstruct_text_with_words(text: str, words: Iterable[str]) -> str:
    """
    Keep only the sentences of `text` that mention one of `words`.

    Used to shrink a provider request down to the sentences that still hold
    uncached terms.
    """
    targets = {w.lower() for w in words}
    cjk_targets = [w for w in targets if is_cjk(w)]
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]

    relevant = []
    for sentence in sentences:
        lowered = sentence.lower()
        has_latin = any(w.lower() in targets for w in _LATIN_WORD.findall(sentence))
        has_cjk = any(w in lowered for w in cjk_targets)
        if has_latin or has_cjk:
            relevant.append(sentence)

    joined = ". ".join(relevant).strip()
    return f"{joined}." if relevant else joined


def mask_words(text: str, words: Iterable[str]) -> str:
    """Remove every whole-word, case-insensitive occurrence of `words` from `text`."""
    masked = text
    for word in words:
        if not word:
            continue
        masked = word_pattern(word).sub("", masked)
    return masked


def word_pattern(word: str) -> "regex.Pattern[str]":
    """
    Compile a case-insensitive matcher for `word`.

    Word characters include CJK ideographs, so "cat" never matches inside
    "category" and a Latin term glued to Chinese text is not a match either.
    CJK terms have no word separators in running text and match as plain
    substrings.
    """
    escaped = regex.escape(word)
    if is_cjk(word):
        return regex.compile(escaped, regex.IGNORECASE)
    return regex.compile(rf"(?<![\w\u4e00-\u9fff]){escaped}(?![\w\u4e00-\u9fff])", regex.IGNORECASE)
