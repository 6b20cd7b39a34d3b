# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import argparse
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, start_http_server

from craftscale.planner.kubernetes_connector import KubernetesConnector
from craftscale.planner.planner_connector import NoOpConnector, PlannerConnector
from craftscale.planner.redis_connector import RedisConnector
from craftscale.planner.scale_protocol import ScaleResponse, TargetReplica
from craftscale.planner.utils.aggregator import AggregationResult, FleetAggregator
from craftscale.planner.utils.config import Config
from craftscale.planner.utils.demand_probe import DemandProber, SetDemand
from craftscale.planner.utils.exceptions import (
    DiscoveryError,
    PlannerConnectionError,
    ProbeError,
)
from craftscale.planner.utils.servers import SetKey
from craftscale.runtime.logging import configure_craftscale_logging, log_error_chain

configure_craftscale_logging()
logger = logging.getLogger(__name__)


class PlannerPrometheusMetrics:
    """Container for all Planner Prometheus metrics."""

    def __init__(
        self, prefix: str = "craftscale", registry: CollectorRegistry = REGISTRY
    ):
        # Observed demand
        self.set_players = Gauge(
            f"{prefix}:set_players",
            "Players connected to the set",
            ["namespace", "set"],
            registry=registry,
        )
        self.proxy_players = Gauge(
            f"{prefix}:proxy_players",
            "Players connected to the proxy sets of the namespace",
            ["namespace"],
            registry=registry,
        )

        # Decisions
        self.desired_replicas = Gauge(
            f"{prefix}:desired_replicas",
            "Desired replicas of the set",
            ["namespace", "set"],
            registry=registry,
        )

        # Failures in the last tick
        self.discovery_failures = Gauge(
            f"{prefix}:discovery_failures",
            "Namespaces whose pod listing failed",
            registry=registry,
        )
        self.probe_failures = Gauge(
            f"{prefix}:probe_failures",
            "Servers of the set whose probe failed",
            ["namespace", "set"],
            registry=registry,
        )

        self.tick_duration = Gauge(
            f"{prefix}:tick_duration_seconds",
            "Duration of the last tick",
            registry=registry,
        )


@dataclass
class TickResult:
    desired: dict[SetKey, int] = field(default_factory=dict)
    players: dict[SetKey, int] = field(default_factory=dict)
    proxy_players: dict[str, int] = field(default_factory=dict)
    # Sets left out of this tick's decision, with the reason
    skipped: dict[SetKey, str] = field(default_factory=dict)
    discovery_errors: dict[str, DiscoveryError] = field(default_factory=dict)
    probe_errors: dict[SetKey, list[ProbeError]] = field(default_factory=dict)
    scale_responses: list[ScaleResponse] = field(default_factory=list)


class BasePlanner:
    """Runs the discovery, probe and decision pipeline once per tick.

    Nothing computed in a tick is reused by the next one: every tick
    rediscovers the fleet and probes it again.
    """

    def __init__(
        self,
        config: Config,
        args: argparse.Namespace,
        kube_connector: Optional[KubernetesConnector] = None,
        redis_connector: Optional[RedisConnector] = None,
        prober: Optional[DemandProber] = None,
        scale_connector: Optional[PlannerConnector] = None,
        prometheus_metrics: Optional[PlannerPrometheusMetrics] = None,
        start_prometheus_server: bool = True,
    ):
        self.config = config
        self.args = args

        self.kube_connector = kube_connector or KubernetesConnector(
            args.kube_config, request_timeout=args.discovery_timeout
        )
        self.redis_connector = redis_connector or RedisConnector(config.redis)
        self.prober = prober or DemandProber(
            args.rcon_password,
            port=args.rcon_port,
            concurrency=args.concurrency,
            timeout=args.probe_timeout,
        )
        # Actuation is external; without a connector decisions are only logged
        self.scale_connector = scale_connector or NoOpConnector()
        self.aggregator = FleetAggregator(
            self.kube_connector,
            config,
            concurrency=args.concurrency,
            discovery_timeout=args.discovery_timeout,
        )
        self._initialized = False

        self.prometheus_port = args.metric_reporting_prometheus_port
        self.prometheus_metrics = prometheus_metrics
        if self.prometheus_metrics is None and self.prometheus_port != 0:
            self.prometheus_metrics = PlannerPrometheusMetrics()
        if start_prometheus_server and self.prometheus_port != 0:
            try:
                start_http_server(self.prometheus_port)
                logger.info(
                    f"Started Prometheus metrics server on port {self.prometheus_port}"
                )
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {e}")

    async def _async_init(self) -> None:
        """Open the cluster and key-value store sessions concurrently.

        Raises:
            PlannerConnectionError: If either session cannot be opened
        """
        if self._initialized:
            return
        services = ("Kubernetes", "redis")
        results = await asyncio.gather(
            self.kube_connector._async_init(),
            self.redis_connector._async_init(),
            return_exceptions=True,
        )
        errors = [
            (service, r)
            for service, r in zip(services, results)
            if isinstance(r, BaseException)
        ]
        if errors:
            for _, error in errors[1:]:
                log_error_chain(logger, error)
            service, error = errors[0]
            if isinstance(error, PlannerConnectionError):
                raise error
            raise PlannerConnectionError(service, str(error)) from error
        self._initialized = True

    async def close(self) -> None:
        await self.kube_connector.close()
        await self.redis_connector.close()
        self._initialized = False

    def compute_proxy_players(
        self, demands: dict[SetKey, SetDemand]
    ) -> dict[str, int]:
        """Players on the proxy tier of each namespace.

        The sum of the probed proxy sets of the namespace, unless an
        operator override is configured.
        """
        override = getattr(self.args, "proxy_players", None)
        proxy_players: dict[str, int] = {}
        for ns in self.config.namespaces:
            if override is not None:
                proxy_players[ns.kname] = override
                continue
            total = 0
            for set_name in ns.proxy_set_names():
                demand = demands.get(SetKey(ns.kname, set_name))
                if demand is None:
                    continue
                if not demand.complete:
                    logger.warning(
                        f"Proxy set {ns.kname}/{set_name} was only partially probed, "
                        "proxy player count may be low"
                    )
                total += demand.players
            proxy_players[ns.kname] = total
        return proxy_players

    def plan_replicas(
        self, aggregation: AggregationResult, demands: dict[SetKey, SetDemand]
    ) -> TickResult:
        """Decide the desired replicas of every configured set."""
        result = TickResult(discovery_errors=dict(aggregation.errors))
        result.proxy_players = self.compute_proxy_players(demands)

        for ns in self.config.namespaces:
            for set_config in ns.sets:
                key = SetKey(ns.kname, set_config.kname)
                if ns.kname in aggregation.errors:
                    result.skipped[key] = "pod discovery failed"
                    continue

                # A configured set without any pod has no players
                demand = demands.get(key, SetDemand())
                if not demand.complete:
                    result.probe_errors[key] = list(demand.errors)
                    result.skipped[key] = f"{len(demand.errors)} probe(s) failed"
                    continue

                proxy_players = result.proxy_players.get(ns.kname, 0)
                desired = set_config.get_replicas(proxy_players, demand.players)
                result.players[key] = demand.players
                result.desired[key] = desired
                logger.info(
                    f"Set {key}: players={demand.players} proxy_players={proxy_players} "
                    f"desired_replicas={desired}"
                )

        for key, reason in result.skipped.items():
            logger.warning(f"Set {key} skipped this tick: {reason}")
        return result

    async def _apply_scaling(self, result: TickResult) -> None:
        target_replicas = [
            TargetReplica(
                namespace=key.namespace,
                set_name=key.set_name,
                desired_replicas=desired,
            )
            for key, desired in result.desired.items()
        ]
        if not target_replicas:
            logger.info("No set to scale this tick")
            return
        result.scale_responses = await self.scale_connector.set_component_replicas(
            target_replicas
        )

    def _report_metrics(self, result: TickResult, duration: float) -> None:
        if self.prometheus_metrics is None:
            return
        metrics = self.prometheus_metrics
        for key, players in result.players.items():
            metrics.set_players.labels(key.namespace, key.set_name).set(players)
        for key, desired in result.desired.items():
            metrics.desired_replicas.labels(key.namespace, key.set_name).set(desired)
        for namespace, players in result.proxy_players.items():
            metrics.proxy_players.labels(namespace).set(players)
        for ns in self.config.namespaces:
            for set_name in ns.set_names():
                key = SetKey(ns.kname, set_name)
                metrics.probe_failures.labels(ns.kname, set_name).set(
                    len(result.probe_errors.get(key, []))
                )
        metrics.discovery_failures.set(len(result.discovery_errors))
        metrics.tick_duration.set(duration)

    async def run_tick(self) -> TickResult:
        """Run one discovery, probe and decision pass.

        Raises:
            PlannerConnectionError: If the sessions cannot be opened
        """
        started = time.monotonic()
        logger.info("New tick started!")
        await self._async_init()

        deadline = None
        if getattr(self.args, "tick_timeout", None):
            deadline = asyncio.get_running_loop().time() + self.args.tick_timeout

        aggregation = await self.aggregator.aggregate(deadline)
        demands = await self.prober.probe_sets(aggregation.sets, deadline)
        result = self.plan_replicas(aggregation, demands)
        await self._apply_scaling(result)

        duration = time.monotonic() - started
        self._report_metrics(result, duration)
        logger.info(
            f"Tick finished in {duration:.2f}s: {len(result.desired)} set(s) planned, "
            f"{len(result.skipped)} skipped"
        )
        return result

    async def run(self) -> Optional[TickResult]:
        """Run a single tick, or one tick per adjustment interval forever."""
        interval = self.args.adjustment_interval
        if interval <= 0:
            return await self.run_tick()

        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self.run_tick()
            except PlannerConnectionError as e:
                log_error_chain(logger, e)
                # Reconnect on the next tick
                await self.close()
            except Exception as e:
                log_error_chain(logger, e)
            await asyncio.sleep(max(0.0, interval - (loop.time() - started)))
