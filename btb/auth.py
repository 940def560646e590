"""
API key authentication for the EV service.

Keys are read once at import from the environment:

    API_KEY_USER1..API_KEY_USER5   numbered keys, user ids "user1".."user5"
    API_KEYS                       extra named keys, "alice:key1,bob:key2"
    ADMIN_USERS                    comma-separated user ids allowed on /admin
                                   routes (default "user1")
"""

from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader
import logging
import os
from typing import Dict, FrozenSet
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

MAX_NUMBERED_USERS = 5


def _parse_named_keys(raw: str) -> Dict[str, str]:
    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        user, sep, key = entry.partition(":")
        if not sep or not user.strip() or not key.strip():
            logger.warning("Ignoring malformed API_KEYS entry %r", entry.split(":")[0])
            continue
        keys[key.strip()] = user.strip()
    return keys


def get_valid_api_keys() -> Dict[str, str]:
    """Map of API key -> user id, from the environment."""
    keys = {}
    for i in range(1, MAX_NUMBERED_USERS + 1):
        key = os.getenv(f"API_KEY_USER{i}")
        if key:
            keys[key] = f"user{i}"
    keys.update(_parse_named_keys(os.getenv("API_KEYS", "")))

    if not keys:
        # Development fallback (never use in production)
        if os.getenv("ENVIRONMENT") == "development":
            keys["dev-key-insecure"] = "user1"
        else:
            raise ValueError("No API keys configured! Set API_KEY_USER1 or API_KEYS in environment")

    return keys


def get_admin_users() -> FrozenSet[str]:
    raw = os.getenv("ADMIN_USERS", "user1")
    return frozenset(u.strip() for u in raw.split(",") if u.strip())


VALID_API_KEYS = get_valid_api_keys()
ADMIN_USERS = get_admin_users()


async def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """
    Resolve the X-API-Key header to a user id.

    Usage in FastAPI routes:
        @app.get("/api/evs/{sport}")
        async def evs(sport: str, user: str = Depends(verify_api_key)): ...
    """
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Include 'X-API-Key' header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    user = VALID_API_KEYS.get(api_key)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return user


async def verify_admin_api_key(user: str = Security(verify_api_key)) -> str:
    """Admin-only routes (refresh trigger, scheduler status)"""
    if user not in ADMIN_USERS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return user
