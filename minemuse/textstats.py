"""Text metrics and domain glossary used by the writer and quality stages."""

from __future__ import annotations

import math
import re

GLOSSARY = {
    "technical": [
        "ASIC", "PoW", "hashrate", "difficulty", "block reward", "merkle root",
        "nonce", "target", "mining pool", "solo mining", "PUE",
        "mining farm", "hash function", "SHA-256", "block header", "genesis block",
    ],
    "economic": [
        "mining revenue", "operating costs", "electricity costs", "profitability",
        "break-even price", "difficulty adjustment", "halving",
        "mining rewards", "transaction fees", "mining economics",
    ],
    "market": [
        "Bitcoin price", "market cap", "trading volume", "volatility",
        "market sentiment", "institutional adoption", "regulatory environment",
    ],
}

AVOID_TERMS = [
    "crypto", "cryptocurrency", "digital currency", "virtual currency",
    "fake money", "scam", "ponzi", "bubble",
]

WORDS_PER_MINUTE = 200
DIFFICULTY_SCORES = {"beginner": 1, "intermediate": 2, "advanced": 3}

_WORD = re.compile(r"[A-Za-z0-9'’-]+")
_SENTENCE_END = re.compile(r"[.!?]+(?:\s|$)")
_PASSIVE = [
    re.compile(r"\b(?:is|are|was|were|be|been|being)\s+\w+ed\b", re.IGNORECASE),
    re.compile(r"\b(?:has|have|had)\s+been\s+\w+ed\b", re.IGNORECASE),
]
_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_MARKDOWN = re.compile(r"[#*_`>\[\]()]")


def words(text: str) -> list[str]:
    return _WORD.findall(text)


def word_count(text: str) -> int:
    return len(words(text))


def reading_time(text: str) -> int:
    """Minutes to read at WORDS_PER_MINUTE, at least one."""
    return max(1, math.ceil(word_count(text) / WORDS_PER_MINUTE))


def sentences(text: str) -> list[str]:
    plain = _MARKDOWN.sub(" ", text)
    return [s.strip() for s in _SENTENCE_END.split(plain) if s.strip()]


def passive_voice_ratio(text: str) -> float:
    """Share of sentences containing a passive construction."""
    parts = sentences(text)
    if not parts:
        return 0.0
    passive = sum(1 for s in parts if any(p.search(s) for p in _PASSIVE))
    return passive / len(parts)


def _syllables(word: str) -> int:
    groups = re.findall(r"[aeiouy]+", word.lower())
    count = len(groups)
    if word.lower().endswith("e") and count > 1:
        count -= 1
    return max(1, count)


def reading_grade(text: str) -> float:
    """Flesch-Kincaid grade level."""
    parts = sentences(text)
    tokens = words(_MARKDOWN.sub(" ", text))
    if not parts or not tokens:
        return 0.0
    syllables = sum(_syllables(w) for w in tokens)
    return 0.39 * len(tokens) / len(parts) + 11.8 * syllables / len(tokens) - 15.59


def glossary_hits(text: str) -> int:
    lowered = text.lower()
    return sum(
        1 for terms in GLOSSARY.values() for term in terms if term.lower() in lowered
    )


def avoided_terms(text: str) -> list[str]:
    lowered = text.lower()
    return [t for t in AVOID_TERMS if re.search(rf"\b{re.escape(t)}\b", lowered)]


def markdown_title(text: str) -> str | None:
    match = _TITLE.search(text)
    return match.group(1).strip() if match else None


def jaccard_similarity(a: str, b: str) -> float:
    set_a = {w.lower() for w in words(a)}
    set_b = {w.lower() for w in words(b)}
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)
