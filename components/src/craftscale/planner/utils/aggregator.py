# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from craftscale.planner.utils.concurrency import gather_bounded, remaining_time
from craftscale.planner.utils.config import Config
from craftscale.planner.utils.exceptions import DiscoveryError
from craftscale.planner.utils.servers import (
    Server,
    SetKey,
    resolve_servers,
    split_by_ns,
    split_by_set,
)

logger = logging.getLogger(__name__)


class PodLister(Protocol):
    async def list_pods(self, namespace: str) -> list[Any]:
        ...


@dataclass
class DiscoveryResult:
    # Servers found in each namespace that answered
    servers: dict[str, list[Server]] = field(default_factory=dict)
    # Namespaces whose listing failed
    errors: dict[str, DiscoveryError] = field(default_factory=dict)


@dataclass
class AggregationResult:
    sets: dict[SetKey, list[Server]] = field(default_factory=dict)
    errors: dict[str, DiscoveryError] = field(default_factory=dict)

    def failed_namespaces(self) -> set[str]:
        return set(self.errors)


class FleetAggregator:
    """Discovers the pods of every configured namespace and groups them by set.

    At most ``concurrency`` namespaces are listed at the same time. A
    namespace that fails is reported in the result and never hides the
    servers of the others.
    """

    def __init__(
        self,
        connector: PodLister,
        config: Config,
        concurrency: int = 3,
        discovery_timeout: Optional[float] = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.connector = connector
        self.config = config
        self.concurrency = concurrency
        self.discovery_timeout = discovery_timeout

    async def _list_namespace(self, namespace: str) -> list[Server]:
        try:
            if self.discovery_timeout is not None:
                pods = await asyncio.wait_for(
                    self.connector.list_pods(namespace), self.discovery_timeout
                )
            else:
                pods = await self.connector.list_pods(namespace)
        except DiscoveryError:
            raise
        except asyncio.TimeoutError as e:
            raise DiscoveryError(
                namespace, f"timed out after {self.discovery_timeout}s"
            ) from e
        except Exception as e:
            raise DiscoveryError(namespace, str(e) or type(e).__name__) from e
        return resolve_servers(pods)

    async def discover(self, deadline: Optional[float] = None) -> DiscoveryResult:
        """List every configured namespace under the concurrency window."""
        namespaces = self.config.namespace_names()
        jobs = {
            ns: (lambda ns=ns: self._list_namespace(ns)) for ns in namespaces
        }
        outcomes = await gather_bounded(
            jobs, self.concurrency, timeout=remaining_time(deadline)
        )

        result = DiscoveryResult()
        for namespace, outcome in outcomes.items():
            if isinstance(outcome, DiscoveryError):
                error = outcome
            elif isinstance(outcome, BaseException):
                error = DiscoveryError(namespace, str(outcome) or type(outcome).__name__)
                error.__cause__ = outcome
            else:
                result.servers[namespace] = outcome
                continue
            logger.error(f"{error}")
            result.errors[namespace] = error
        return result

    async def aggregate(self, deadline: Optional[float] = None) -> AggregationResult:
        """Discover the fleet and group its servers by (namespace, set)."""
        discovery = await self.discover(deadline)
        all_servers = [s for servers in discovery.servers.values() for s in servers]

        result = AggregationResult(errors=dict(discovery.errors))
        by_namespace = split_by_ns(all_servers, self.config.namespace_names())
        for namespace, servers in by_namespace.items():
            by_set = split_by_set(servers, self.config.set_names(namespace))
            for set_name, members in by_set.items():
                result.sets[SetKey(namespace, set_name)] = members
            logger.debug(
                f'Namespace "{namespace}": {len(servers)} server(s) in '
                f"{len(by_set)} configured set(s)"
            )
        return result
