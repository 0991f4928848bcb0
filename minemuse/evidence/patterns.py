"""Deterministic KPI extraction from free text.

Each extractor is a pure function ``text -> float | None`` that returns
the first match inside the KPI's sanity bounds. Out-of-range matches are
skipped, never clamped.
"""

from __future__ import annotations

import re
from typing import Callable, Iterator

from minemuse.metrics import BREAK_EVEN, CARBON_INTENSITY, PUE, RENEWABLE_PERCENT
from minemuse.models import MetricSpec

_NUM = r"(\d{1,3}(?:\.\d+)?)"

_RENEWABLE_PATTERNS = [
    # "renewable share of 52.4%", "renewables account for about 54 %"
    re.compile(r"renewabl\w*[^%\d\n]{0,80}?" + _NUM + r"\s?%", re.IGNORECASE),
    # "52.4% renewable", "54% of the energy mix is renewable"
    re.compile(_NUM + r"\s?%[^.\n]{0,60}?renewabl", re.IGNORECASE),
    # JSON-ish answers: "renewablePercent": 52.4
    re.compile(r"renewable_?percent\w*\"?\s*[:=]\s*" + _NUM, re.IGNORECASE),
    re.compile(r"(?:sustainable|clean|green)\s+(?:energy|power)[^%\d\n]{0,60}?" + _NUM + r"\s?%", re.IGNORECASE),
]

_PUE_PATTERNS = [
    re.compile(
        r"\bPUE\b\"?\s*(?:(?:average|mean|of|is|was|at|around|about|approximately|"
        r"=|:|~|≈|\(|\))\s*)*(\d(?:[.,]\d{1,3})?)\b",
        re.IGNORECASE,
    ),
    re.compile(r"power\s+usage\s+effectiveness[^\d\n]{0,40}?(\d(?:[.,]\d{1,3})?)\b", re.IGNORECASE),
]

_CARBON_KG = re.compile(
    r"(\d(?:[.,]\d+)?)\s*kg\s*(?:of\s+)?(?:CO2e?|CO₂e?|carbon)?\s*(?:/|per)\s*kWh",
    re.IGNORECASE,
)
_CARBON_G = re.compile(
    r"(\d{2,4})(?:[.,](\d+))?\s*g(?:rams?)?\s*(?:of\s+)?(?:CO2e?|CO₂e?|carbon)?\s*(?:/|per)\s*kWh",
    re.IGNORECASE,
)
_CARBON_JSON = re.compile(r"carbon_?kg_?per_?kwh\"?\s*[:=]\s*(\d(?:\.\d+)?)", re.IGNORECASE)

# Bounded window so a break-even mention does not pick up an unrelated price
_BREAK_EVEN = re.compile(
    r"break[\-\s]?even[\s\S]{0,60}?\$\s?(\d{1,3}(?:,\d{3})+|\d{2,6})(?:\.\d+)?\s*([kK])?\b",
    re.IGNORECASE,
)
_BREAK_EVEN_JSON = re.compile(r"break_?even_?usd\"?\s*[:=]\s*(\d{4,6})", re.IGNORECASE)


def _to_float(raw: str) -> float | None:
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        return None


def _first_in_bounds(spec: MetricSpec, values: Iterator[float | None]) -> float | None:
    for value in values:
        if spec.accepts(value):
            return value
    return None


def _renewable_values(text: str) -> Iterator[float | None]:
    for pattern in _RENEWABLE_PATTERNS:
        for match in pattern.finditer(text):
            yield _to_float(match.group(1))


def _pue_values(text: str) -> Iterator[float | None]:
    for pattern in _PUE_PATTERNS:
        for match in pattern.finditer(text):
            yield _to_float(match.group(1))


def _carbon_values(text: str) -> Iterator[float | None]:
    for match in _CARBON_JSON.finditer(text):
        yield _to_float(match.group(1))
    for match in _CARBON_KG.finditer(text):
        yield _to_float(match.group(1))
    for match in _CARBON_G.finditer(text):
        grams = _to_float(match.group(1) + ("." + match.group(2) if match.group(2) else ""))
        yield grams / 1000 if grams is not None else None


def _break_even_values(text: str) -> Iterator[float | None]:
    for match in _BREAK_EVEN_JSON.finditer(text):
        yield float(match.group(1))
    for match in _BREAK_EVEN.finditer(text):
        value = float(match.group(1).replace(",", ""))
        if match.group(2):
            value *= 1000
        yield value


def extract_renewable_percent(text: str) -> float | None:
    """Renewable share of mining energy, in percent (10-100)."""
    return _first_in_bounds(RENEWABLE_PERCENT, _renewable_values(text or ""))


def extract_pue(text: str) -> float | None:
    """Power usage effectiveness (1.05-3.0)."""
    return _first_in_bounds(PUE, _pue_values(text or ""))


def extract_carbon_intensity(text: str) -> float | None:
    """Carbon intensity in kg CO2/kWh (0.05-2.0); g/kWh figures are converted."""
    return _first_in_bounds(CARBON_INTENSITY, _carbon_values(text or ""))


def extract_break_even(text: str) -> float | None:
    """Mining break-even BTC price in USD (5,000-300,000)."""
    return _first_in_bounds(BREAK_EVEN, _break_even_values(text or ""))


EXTRACTORS: dict[str, Callable[[str], float | None]] = {
    RENEWABLE_PERCENT.name: extract_renewable_percent,
    PUE.name: extract_pue,
    CARBON_INTENSITY.name: extract_carbon_intensity,
    BREAK_EVEN.name: extract_break_even,
}
