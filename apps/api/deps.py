from fastapi import HTTPException, status

import packages.config as config
from packages.store import SupabaseStore


def store_configured() -> bool:
    return bool(config.SUPABASE_URL) and bool(config.SUPABASE_ANON_KEY)


def get_store() -> SupabaseStore:
    # Reads go through the anon key; row level security allows public SELECT
    # on both tables and public INSERT on diary_entries only.
    if not store_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY.",
        )
    return SupabaseStore(config.SUPABASE_URL, config.SUPABASE_ANON_KEY, timeout=config.STORE_TIMEOUT_SEC)
