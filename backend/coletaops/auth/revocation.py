"""JWT access-token revocation backed by a Redis blacklist.

Logout stores the token under ``revoked:<token>`` until its natural
expiry, so a stolen token stops working immediately instead of living
out its remaining lifetime.
"""

import logging
import time

import redis.asyncio as redis

from coletaops.utils.cache import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Blacklist a token until ``expires_at`` (unix timestamp)."""
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            # Already expired, nothing to blacklist
            return True

        redis_client = await get_redis()
        try:
            await redis_client.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except redis.RedisError as e:
            logger.error("Failed to revoke token: %s", e)
            return False

    @staticmethod
    async def is_revoked(token: str) -> bool:
        redis_client = await get_redis()
        try:
            return await redis_client.exists(f"revoked:{token}") > 0
        except redis.RedisError as e:
            logger.error("Failed to check token revocation: %s", e)
            # Fail closed
            return True
