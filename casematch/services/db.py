"""Shared Supabase client, one lazy-loaded instance for the entire app."""

import threading

from supabase import Client, create_client

from casematch.config import get_settings

_supabase: Client | None = None
_client_lock = threading.Lock()


class CatalogNotConfigured(RuntimeError):
    """SUPABASE_URL / SUPABASE_KEY are not set."""


def get_supabase_client() -> Client:
    """Get or create the shared Supabase client (thread-safe)."""
    global _supabase
    if _supabase is None:
        with _client_lock:
            if _supabase is None:
                settings = get_settings()
                if not settings.catalog_configured:
                    raise CatalogNotConfigured(
                        "Catalog database is not configured "
                        "(set SUPABASE_URL and SUPABASE_KEY)"
                    )
                _supabase = create_client(settings.supabase_url, settings.supabase_key)
    return _supabase
