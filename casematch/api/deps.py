"""FastAPI dependency injection."""

from casematch.config import Settings, get_settings
from casematch.services.ranking_cache import RankingCache, ranking_cache


async def get_ranking_cache() -> RankingCache:
    """Dependency for the catalog ranking cache."""
    return ranking_cache


async def get_app_settings() -> Settings:
    return get_settings()
