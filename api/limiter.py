"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Limits are callables so they are read from Settings at request time rather
than at import time:
  default_limits -> Settings.global_rate_limit (every route not exempted)
  auth_limit     -> Settings.auth_rate_limit   (register and login)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings


def global_limit() -> str:
    return get_settings().global_rate_limit


def auth_limit() -> str:
    return get_settings().auth_rate_limit


limiter = Limiter(key_func=get_remote_address, default_limits=[global_limit], storage_uri="memory://")
