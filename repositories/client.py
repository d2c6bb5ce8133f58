"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
call `get_supabase()` for every operation; the client is built on first use so
importing a repository never requires credentials.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import threading
from typing import Optional

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import get_settings

_client: Optional[Client] = None
_lock = threading.Lock()


def get_supabase() -> Client:
    """Return the process-wide Supabase client, creating it on first call."""

    global _client
    if _client is not None:
        return _client

    with _lock:
        if _client is None:
            settings = get_settings()
            if not settings.supabase_url:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_URL. "
                    "Set SUPABASE_URL to your Supabase project URL."
                )
            if not settings.supabase_key:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_KEY. "
                    "Set SUPABASE_KEY to your Supabase API key."
                )
            _client = create_client(settings.supabase_url, settings.supabase_key)
    return _client


def set_supabase(client: Optional[Client]) -> None:
    """Install a specific client (or reset with None). Used by tests."""

    global _client
    with _lock:
        _client = client


__all__ = ["get_supabase", "set_supabase"]
