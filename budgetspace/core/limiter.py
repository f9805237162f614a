from slowapi import Limiter
from slowapi.util import get_remote_address

from budgetspace.core.config import settings

# Shared by every router; counters live in Redis
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.redis_url,
    enabled=settings.rate_limit_enabled,
)
