"""Canonical in-memory shapes for stored answer arrays.

Persisted arrays carry either the long field names (``employeeId``/``score``,
``questionId``/``categoryId``/``score``) or the shortened ones (``uid``/``s``,
``qid``/``cid``/``s``). Everything read from the stores passes through here.
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable

from survey_backend.utils.exceptions import CorruptDataError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class GrowthEntry:
    """One respondent's answer inside a growth question row. ``score`` is None for free text."""

    user_id: int
    score: float | None

    def to_stored(self) -> dict:
        return {"uid": self.user_id, "s": self.score}


@dataclass(frozen=True)
class OrganizationalEntry:
    """One single-choice answer inside a user's organizational row."""

    question_id: int
    category_id: int
    score: float

    def to_stored(self) -> dict:
        return {"qid": self.question_id, "cid": self.category_id, "s": self.score}


def coerce_number(value: Any) -> float | int | None:
    """Best-effort numeric coercion. Returns None when the value is not a usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def coerce_id(value: Any) -> int | None:
    """Coerce an identifier to int; fractional or non-numeric values are rejected."""
    number = coerce_number(value)
    if number is None:
        return None
    if isinstance(number, float):
        if not number.is_integer():
            return None
        number = int(number)
    return number


def _first_present(raw: dict, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    for key in keys:
        if key in raw:
            return None
    return _MISSING


def parse_answer_array(value: Any) -> list:
    """Decode a stored answer array.

    Raises:
        CorruptDataError: If the value is not a list or a JSON string encoding one
    """
    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except ValueError as e:
            raise CorruptDataError(f"unparseable answer array: {e}") from e
    if not isinstance(value, list):
        raise CorruptDataError(f"answer array has type {type(value).__name__}")
    return value


def load_answer_array(value: Any, context: str) -> list:
    """Decode a stored answer array, degrading corrupt data to an empty array."""
    try:
        return parse_answer_array(value)
    except CorruptDataError as e:
        logger.warning(f"Corrupt answer array in {context}; treating as empty. {e}")
        return []


def normalize_growth_entry(raw: Any) -> GrowthEntry | None:
    """Normalize ``{uid, s}`` / ``{employeeId, score}`` to a :class:`GrowthEntry`.

    Returns None when the user id is missing or invalid, or when a score is
    present but not numeric. An absent or null score is a free-text placeholder.
    """
    if not isinstance(raw, dict):
        return None

    user_value = _first_present(raw, "uid", "employeeId")
    if user_value is _MISSING:
        return None
    user_id = coerce_id(user_value)
    if user_id is None:
        return None

    score_value = _first_present(raw, "s", "score")
    if score_value is _MISSING or score_value is None:
        return GrowthEntry(user_id=user_id, score=None)

    score = coerce_number(score_value)
    if score is None:
        return None
    return GrowthEntry(user_id=user_id, score=score)


def normalize_organizational_entry(raw: Any) -> OrganizationalEntry | None:
    """Normalize ``{qid, cid, s}`` / ``{questionId, categoryId, score}``.

    Returns None when any of the three fields is missing or not numeric.
    """
    if not isinstance(raw, dict):
        return None

    question_id = coerce_id(_first_present(raw, "qid", "questionId"))
    category_id = coerce_id(_first_present(raw, "cid", "categoryId"))
    score = coerce_number(_first_present(raw, "s", "score"))
    if question_id is None or category_id is None or score is None:
        return None
    return OrganizationalEntry(question_id=question_id, category_id=category_id, score=score)


def normalize_growth_entries(raw_entries: Iterable[Any]) -> list[GrowthEntry]:
    """Normalize a growth result array, keeping the last entry per user."""
    latest: dict[int, GrowthEntry] = {}
    for raw in raw_entries:
        entry = normalize_growth_entry(raw)
        if entry is None:
            continue
        latest.pop(entry.user_id, None)
        latest[entry.user_id] = entry
    return list(latest.values())


def normalize_organizational_entries(raw_entries: Iterable[Any]) -> list[OrganizationalEntry]:
    """Normalize an organizational response array, keeping the last entry per question."""
    latest: dict[int, OrganizationalEntry] = {}
    for raw in raw_entries:
        entry = normalize_organizational_entry(raw)
        if entry is None:
            continue
        latest.pop(entry.question_id, None)
        latest[entry.question_id] = entry
    return list(latest.values())


def load_growth_entries(value: Any, context: str) -> list[GrowthEntry]:
    return normalize_growth_entries(load_answer_array(value, context))


def load_organizational_entries(value: Any, context: str) -> list[OrganizationalEntry]:
    return normalize_organizational_entries(load_answer_array(value, context))
