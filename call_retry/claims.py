"""Idempotency claims for scheduled retries.

A claim key is derived from the contact id and the attempt number, so that
two deliveries of the same end-of-call report cannot schedule two retries.

Notes:
- With REDIS_URL set, claims live in Redis and are shared across workers.
- Without it, claims are kept in process memory and do not survive restarts.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional

import redis

from call_retry.config import config
from call_retry.logging_config import get_logger

logger = get_logger(__name__)


def claim_key(contact_id: str, attempt: Any) -> str:
    return f"{contact_id}:{attempt}"


class RetryClaimStore:
    """
    Set-if-absent store with expiry.

    ``claim`` returns True for the first caller of a key and False for every
    later caller until the claim expires or is released.
    """

    KEY_PREFIX = "retry_claim:"

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl_seconds: int = 86400):
        self._redis = redis_client
        self._ttl = ttl_seconds
        self._claims: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def claim(self, key: str) -> bool:
        if self._redis is not None:
            return bool(self._redis.set(self.KEY_PREFIX + key, "1", nx=True, ex=self._ttl))

        now = time.monotonic()
        with self._lock:
            expires_at = self._claims.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._claims[key] = now + self._ttl
            return True

    def release(self, key: str) -> None:
        if self._redis is not None:
            self._redis.delete(self.KEY_PREFIX + key)
            return
        with self._lock:
            self._claims.pop(key, None)

    def ping(self) -> bool:
        if self._redis is None:
            return True
        return bool(self._redis.ping())


def build_claim_store() -> RetryClaimStore:
    """Claim store for the configured backend."""
    if config.has_redis():
        logger.info("retry_claims_backend", backend="redis")
        return RetryClaimStore(
            redis.Redis.from_url(config.REDIS_URL),
            ttl_seconds=config.RETRY_CLAIM_TTL_SECONDS,
        )
    logger.info("retry_claims_backend", backend="memory")
    return RetryClaimStore(ttl_seconds=config.RETRY_CLAIM_TTL_SECONDS)
