import uuid

import redis.asyncio as aioredis

from budgetspace.core.config import settings

# Shared async Redis client (created lazily, reused across requests)
_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


# ─── Session revocation ────────────────────────────────────────────────────────

_REVOKED_PREFIX = "session_revoked:"


async def revoke_session(jti: str, ttl_seconds: int) -> None:
    """Mark a session JTI as revoked for its remaining lifetime."""
    if ttl_seconds > 0:
        await get_redis().setex(f"{_REVOKED_PREFIX}{jti}", ttl_seconds, "1")


async def is_revoked(jti: str) -> bool:
    return await get_redis().exists(f"{_REVOKED_PREFIX}{jti}") == 1


# ─── Login lockout ─────────────────────────────────────────────────────────────

_FAIL_PREFIX = "login_fails:"
_LOCKOUT_SECONDS = 15 * 60   # 15-minute lockout window
_MAX_ATTEMPTS = 5            # failures before lockout triggers


async def record_login_failure(email: str) -> int:
    """Increment failure counter; set TTL on first failure. Returns new count."""
    r = get_redis()
    key = f"{_FAIL_PREFIX}{email.lower()}"
    count = await r.incr(key)
    if count == 1:
        await r.expire(key, _LOCKOUT_SECONDS)
    return count


async def is_locked_out(email: str) -> bool:
    count = await get_redis().get(f"{_FAIL_PREFIX}{email.lower()}")
    return int(count) >= _MAX_ATTEMPTS if count else False


async def clear_login_failures(email: str) -> None:
    await get_redis().delete(f"{_FAIL_PREFIX}{email.lower()}")


# ─── Process-due lock ──────────────────────────────────────────────────────────
# One rollover per workspace at a time

_PROCESS_LOCK_PREFIX = "process_due:"


async def acquire_process_lock(workspace_id: uuid.UUID) -> str | None:
    """Take the workspace lock. Returns the owner token, or None if already held."""
    token = uuid.uuid4().hex
    acquired = await get_redis().set(
        f"{_PROCESS_LOCK_PREFIX}{workspace_id}",
        token,
        nx=True,
        ex=settings.process_due_lock_seconds,
    )
    return token if acquired else None


async def release_process_lock(workspace_id: uuid.UUID, token: str) -> None:
    """Release the lock only if this caller still owns it."""
    r = get_redis()
    key = f"{_PROCESS_LOCK_PREFIX}{workspace_id}"
    if await r.get(key) == token:
        await r.delete(key)
