# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for bounded discovery and (namespace, set) aggregation."""

import asyncio

import pytest

from craftscale.planner.utils.aggregator import FleetAggregator
from craftscale.planner.utils.concurrency import gather_bounded
from craftscale.planner.utils.config import Config, NamespaceConfig, RedisSection, SetConfig
from craftscale.planner.utils.exceptions import DiscoveryError
from craftscale.planner.utils.servers import SetKey

pytestmark = [
    pytest.mark.unit,
    pytest.mark.planner,
]


def pod(name, namespace, owner, hostname=None):
    return {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "owner_references": [{"name": owner}] if owner else None,
        },
        "spec": {"hostname": hostname or name, "subdomain": owner or "none"},
    }


def make_config(namespaces):
    """namespaces: {namespace: [set names]}"""
    return Config(
        redis=RedisSection(url="redis://localhost"),
        namespaces=tuple(
            NamespaceConfig(
                kname=ns,
                sets=tuple(SetConfig(kname=s, players_per_server=10) for s in sets),
            )
            for ns, sets in namespaces.items()
        ),
    )


class InstrumentedLister:
    """Fake pod lister recording how many calls are in flight."""

    def __init__(self, pods_by_ns=None, fail=(), delay=0.01):
        self.pods_by_ns = pods_by_ns or {}
        self.fail = set(fail)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def list_pods(self, namespace):
        self.calls.append(namespace)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if namespace in self.fail:
                raise RuntimeError(f"boom in {namespace}")
            return list(self.pods_by_ns.get(namespace, []))
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_concurrency_window_is_respected():
    namespaces = {f"ns-{i}": ["lobby"] for i in range(10)}
    lister = InstrumentedLister()
    aggregator = FleetAggregator(lister, make_config(namespaces), concurrency=3)

    result = await aggregator.discover()

    assert sorted(lister.calls) == sorted(namespaces)
    assert lister.max_in_flight == 3
    assert set(result.servers) == set(namespaces)
    assert result.errors == {}


@pytest.mark.asyncio
async def test_failed_namespace_does_not_hide_siblings():
    lister = InstrumentedLister(
        pods_by_ns={
            "ns-a": [pod("lobby-0", "ns-a", "lobby")],
            "ns-c": [pod("lobby-0", "ns-c", "lobby")],
        },
        fail={"ns-b"},
    )
    config = make_config({"ns-a": ["lobby"], "ns-b": ["lobby"], "ns-c": ["lobby"]})
    aggregator = FleetAggregator(lister, config, concurrency=2)

    result = await aggregator.aggregate()

    assert set(result.errors) == {"ns-b"}
    assert isinstance(result.errors["ns-b"], DiscoveryError)
    assert isinstance(result.errors["ns-b"].__cause__, RuntimeError)
    assert set(result.sets) == {SetKey("ns-a", "lobby"), SetKey("ns-c", "lobby")}
    assert result.failed_namespaces() == {"ns-b"}


@pytest.mark.asyncio
async def test_discovery_timeout_becomes_discovery_error():
    lister = InstrumentedLister(delay=1.0)
    aggregator = FleetAggregator(
        lister, make_config({"slow": ["lobby"]}), discovery_timeout=0.01
    )

    result = await aggregator.discover()

    assert "timed out" in str(result.errors["slow"])


@pytest.mark.asyncio
async def test_tick_deadline_cancels_outstanding_listings():
    lister = InstrumentedLister(delay=1.0)
    aggregator = FleetAggregator(lister, make_config({"a": [], "b": []}))
    deadline = asyncio.get_running_loop().time() + 0.05

    result = await aggregator.discover(deadline)

    assert set(result.errors) == {"a", "b"}
    assert lister.in_flight == 0


@pytest.mark.asyncio
async def test_aggregate_groups_by_namespace_and_set():
    lister = InstrumentedLister(
        pods_by_ns={
            "survival": [
                pod("lobby-0", "survival", "lobby"),
                pod("lobby-1", "survival", "lobby"),
                pod("game-0", "survival", "game"),
                pod("unmanaged-0", "survival", "unmanaged"),
                pod("orphan", "survival", None),
            ],
            "creative": [pod("lobby-0", "creative", "lobby")],
        }
    )
    config = make_config({"survival": ["lobby", "game"], "creative": ["lobby"]})

    result = await FleetAggregator(lister, config).aggregate()

    assert set(result.sets) == {
        SetKey("survival", "lobby"),
        SetKey("survival", "game"),
        SetKey("creative", "lobby"),
    }
    assert [s.name for s in result.sets[SetKey("survival", "lobby")]] == [
        "lobby-0",
        "lobby-1",
    ]
    assert result.sets[SetKey("creative", "lobby")][0].fqdn == "lobby-0.lobby.creative"


@pytest.mark.asyncio
async def test_pod_reporting_foreign_namespace_is_discarded():
    lister = InstrumentedLister(
        pods_by_ns={"ns": [pod("lobby-0", "elsewhere", "lobby")]}
    )
    result = await FleetAggregator(lister, make_config({"ns": ["lobby"]})).aggregate()
    assert result.sets == {}


def test_invalid_concurrency():
    with pytest.raises(ValueError):
        FleetAggregator(InstrumentedLister(), make_config({}), concurrency=0)


class TestGatherBounded:
    @pytest.mark.asyncio
    async def test_results_and_exceptions_per_key(self):
        async def ok():
            return 1

        async def ko():
            raise KeyError("x")

        results = await gather_bounded({"ok": ok, "ko": ko}, limit=1)

        assert results["ok"] == 1
        assert isinstance(results["ko"], KeyError)

    @pytest.mark.asyncio
    async def test_empty_jobs(self):
        assert await gather_bounded({}, limit=3) == {}

    @pytest.mark.asyncio
    async def test_timeout_reports_pending_jobs(self):
        async def fast():
            return "done"

        async def slow():
            await asyncio.sleep(10)

        results = await gather_bounded({"fast": fast, "slow": slow}, limit=2, timeout=0.05)

        assert results["fast"] == "done"
        assert isinstance(results["slow"], asyncio.TimeoutError)

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        with pytest.raises(ValueError):
            await gather_bounded({}, limit=0)
