from supabase import create_client, Client

from shared.errors import ConfigError


def get_supabase_client(url: str | None, key: str | None) -> Client:
    """Get initialized Supabase client."""
    if not url or not key:
        raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key)
