"""
Backend clients and configuration.

Provides lazily created singletons of:
- Async Upstash Redis client (document store streams)
- Async Supabase client (product catalog)

All configuration comes from environment variables read at import time.
"""

import os
from typing import Optional

from supabase._async.client import AsyncClient, create_client as acreate_client
from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.errors import Unconfigured

# Upstash Redis (standard env var names per Upstash docs)
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Supabase (product catalog)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

# Local device id file for anonymous shoppers
STOREFRONT_DEVICE_FILE = os.environ.get(
    "STOREFRONT_DEVICE_FILE",
    os.path.join(os.path.expanduser("~"), ".storefront", "device.json"),
)

# Subscription polling interval (seconds); Upstash REST has no blocking reads
STOREFRONT_POLL_INTERVAL = float(os.environ.get("STOREFRONT_POLL_INTERVAL", "1.0"))


_redis_client: Optional[AsyncRedis] = None
_async_supabase_client: Optional[AsyncClient] = None


def is_redis_configured() -> bool:
    return bool(UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN)


def is_supabase_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Raises:
        Unconfigured: UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN missing
    """
    global _redis_client

    if _redis_client is None:
        if not is_redis_configured():
            raise Unconfigured("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).

    Raises:
        Unconfigured: SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY missing
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        if not is_supabase_configured():
            raise Unconfigured("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    return _async_supabase_client


class StreamKeys:
    """Redis stream key prefixes for persisted documents."""

    DOCUMENT = "doc:"  # doc:{kind}:{key}

    @staticmethod
    def document_key(kind: str, key: str) -> str:
        return f"{StreamKeys.DOCUMENT}{kind}:{key}"
