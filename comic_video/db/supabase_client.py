"""Service-role Supabase client construction."""

from supabase import create_client, Client

from comic_video.config import Settings


def create_supabase(settings: Settings) -> Client:
    """Create the Supabase client using the service role key."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"
        )
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )
