"""Thread-safe TTL cache for catalog-backed case rankings.

Only rankings computed from catalog rows are cached; ad-hoc requests that
carry their own records are always scored fresh. Each uvicorn worker gets
its own cache instance (no cross-process sharing).
"""

import logging
import threading
from typing import Any, Optional

from cachetools import TTLCache

from casematch.config import get_settings
from casematch.models.match import RankingResult

logger = logging.getLogger(__name__)


class RankingCache:
    """TTL cache of RankingResult objects keyed on the ranking request."""

    def __init__(self, maxsize: int = 256, ttl: int = 600) -> None:
        """Initialize the cache.

        Args:
            maxsize: Max entries.
            ttl: Time-to-live in seconds (default 10 minutes). Catalog edits
                show up in rankings once the entry expires.
        """
        self._cache: TTLCache[tuple[Any, ...], RankingResult] = TTLCache(
            maxsize=maxsize, ttl=ttl
        )
        self._lock = threading.Lock()

    @staticmethod
    def make_key(
        gear_id: str,
        profile: str,
        include_infeasible: bool,
        case_type: Optional[str] = None,
        protection_level: Optional[str] = None,
        min_score: int = 0,
    ) -> tuple[Any, ...]:
        """Build a cache key; string filters are lowered/stripped."""

        def _norm(val: Optional[str]) -> Optional[str]:
            if val is None:
                return None
            s = val.lower().strip()
            return s if s else None

        return (
            gear_id,
            _norm(profile),
            bool(include_infeasible),
            _norm(case_type),
            _norm(protection_level),
            int(min_score),
        )

    def get(self, key: tuple[Any, ...]) -> Optional[RankingResult]:
        """Get a cached ranking (thread-safe). Returns None on miss."""
        with self._lock:
            return self._cache.get(key)

    def set(self, key: tuple[Any, ...], value: RankingResult) -> None:
        """Store a ranking in the cache (thread-safe)."""
        with self._lock:
            self._cache[key] = value
        logger.debug("Ranking cache set: %s", key)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


def _build_default_cache() -> RankingCache:
    settings = get_settings()
    return RankingCache(
        maxsize=settings.ranking_cache_size, ttl=settings.ranking_cache_ttl
    )


# Singleton
ranking_cache = _build_default_cache()
