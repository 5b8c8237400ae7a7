"""Utilities module - caching, retries and datetime helpers."""
from survey_backend.utils.datetime_helpers import ensure_utc
from survey_backend.utils.cache import SimpleCache, NullCache, ResponseCache

__all__ = ["ensure_utc", "SimpleCache", "NullCache", "ResponseCache"]
