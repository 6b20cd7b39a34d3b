# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Key-value store session (redis) opened next to the cluster session."""

import logging
from typing import Optional
from urllib.parse import urlsplit

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from craftscale.planner.utils.config import RedisSection
from craftscale.planner.utils.exceptions import PlannerConnectionError
from craftscale.runtime.logging import configure_craftscale_logging

configure_craftscale_logging()
logger = logging.getLogger(__name__)

# Counter bumped at startup to check that the session can write
CHECK_KEY = "hello"


def redact_url(url: str) -> str:
    """Drop the credentials of a redis URL before logging it."""
    parts = urlsplit(url)
    if parts.password is None and parts.username is None:
        return url
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return parts._replace(netloc=f"***@{host}").geturl()


class RedisConnector:
    def __init__(self, section: RedisSection, connect_timeout: Optional[float] = 5.0):
        self.section = section
        self.connect_timeout = connect_timeout
        self.client: Optional[aioredis.Redis] = None

    def key(self, name: str) -> str:
        """Full key of ``name`` under the configured prefix."""
        return self.section.key_prefix() + name

    async def _async_init(self) -> None:
        """Open the connection, PING it and bump the prefixed check counter."""
        url = redact_url(self.section.url)
        logger.info(f'Connection to "{url}"...')
        try:
            client = aioredis.from_url(
                self.section.url, socket_connect_timeout=self.connect_timeout
            )
        except ValueError as e:
            raise PlannerConnectionError("redis", f"invalid URL {url}: {e}") from e
        try:
            await client.ping()
            count = await client.incr(self.key(CHECK_KEY))
        except (RedisError, OSError) as e:
            await client.aclose()
            raise PlannerConnectionError("redis", str(e)) from e
        self.client = client
        logger.debug(f"{self.key(CHECK_KEY)}: {count}")
        logger.info("Connected to redis!")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
