"""
Supabase client for the analysis store and usage ledger.
"""

import logging
from typing import Optional

from supabase import create_client, Client

from .config import Config

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client, creating it on first use.

    Raises:
        ValueError: If SUPABASE_URL / SUPABASE_SERVICE_KEY are not configured
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(
            Config.SUPABASE_URL,
            Config.SUPABASE_SERVICE_KEY
        )
        logger.debug("Supabase client created")

    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the cached client so the next call reconnects (tests, key rotation)."""
    global _supabase_client
    _supabase_client = None
