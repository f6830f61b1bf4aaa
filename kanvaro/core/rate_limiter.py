"""Rate limiter shared by the auth endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from kanvaro.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=not settings.DEBUG)
