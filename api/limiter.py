"""
api/limiter.py -- The process-wide slowapi limiter and the limits it enforces.

Only the token endpoint is limited: it is the one route reachable without a
token and the one where each failed attempt costs a bcrypt comparison.
Counters are keyed by client IP and kept in memory, so they reset on restart
and are not shared between worker processes.

api/main.py mounts SlowAPIMiddleware against this instance; routes decorate
themselves with @limiter.limit(TOKEN_LIMIT).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

TOKEN_LIMIT = get_settings().token_rate_limit

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
