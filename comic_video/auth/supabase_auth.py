"""Supabase JWT validation dependency for FastAPI."""

from fastapi import Header, HTTPException, Request
from supabase import create_client


def current_user_id(request: Request, authorization: str = Header(None)) -> str:
    """Validate the Supabase JWT from the Authorization header.

    Returns the authenticated user's id.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token")

    token = authorization.replace("Bearer ", "")
    settings = request.app.state.services.settings
    try:
        client = create_client(settings.supabase_url, settings.supabase_anon_key)
        user = client.auth.get_user(token).user
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(user.id)
