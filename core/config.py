"""
Environment configuration for StreamList API.

Settings are read from environment variables once at startup and passed by
reference to the components that need them. Twitch credentials are optional
here; their absence is reported by the token manager on first use.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
    "https://streamlist-modern.vercel.app",
)


def parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma or whitespace separated origin list, dropping trailing slashes"""
    if not raw:
        return DEFAULT_ALLOWED_ORIGINS
    origins = [item.rstrip("/") for item in re.split(r"[,\s]+", raw) if item]
    return tuple(origins) or DEFAULT_ALLOWED_ORIGINS


@dataclass(frozen=True)
class Settings:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    allowed_origins: Tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)
    upstream_timeout: float = 10.0
    environment: str = "development"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            client_id=env.get("TWITCH_CLIENT_ID") or None,
            client_secret=env.get("TWITCH_CLIENT_SECRET") or None,
            allowed_origins=parse_origins(env.get("CORS_ALLOWED_ORIGINS")),
            upstream_timeout=float(env.get("UPSTREAM_TIMEOUT_SECONDS", "10")),
            environment=env.get("ENVIRONMENT", "development").lower(),
        )
