"""
Rate limiter shared by the app factory and the endpoints that use it.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.api.rate_limit_enabled)
