"""
Shared slowapi limiter. Routes decorate with limiter.limit(); main.py wires
the middleware and the 429 handler.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from ticketdesk.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
