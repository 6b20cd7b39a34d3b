# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Server descriptors built from discovered pods and their grouping."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, NamedTuple, Optional

logger = logging.getLogger(__name__)

UNKNOWN_SERVER_NAME = "unknown"


class SetKey(NamedTuple):
    """Identifies a set across namespaces"""

    namespace: str
    set_name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.set_name}"


@dataclass(frozen=True)
class Server:
    name: str = UNKNOWN_SERVER_NAME
    namespace: Optional[str] = None
    # Name of the owning StatefulSet
    set: Optional[str] = None
    # hostname.subdomain.namespace, reachable inside the cluster
    fqdn: Optional[str] = None


def _get(obj: Any, *names: str) -> Any:
    """Read a field from a kubernetes model object or its dict form."""
    if obj is None:
        return None
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


def resolve_server(pod: Any) -> Server:
    """Build the Server descriptor of a pod. Never fails on missing fields."""
    metadata = _get(pod, "metadata")
    spec = _get(pod, "spec")

    name = _get(metadata, "name") or UNKNOWN_SERVER_NAME
    namespace = _get(metadata, "namespace") or None
    hostname = _get(spec, "hostname")
    subdomain = _get(spec, "subdomain")

    fqdn = None
    if hostname and subdomain and namespace:
        fqdn = f"{hostname}.{subdomain}.{namespace}"

    set_name = None
    owners = _get(metadata, "owner_references", "ownerReferences")
    if owners:
        set_name = _get(owners[0], "name") or None

    return Server(name=name, namespace=namespace, set=set_name, fqdn=fqdn)


def resolve_servers(pods: Iterable[Any]) -> list[Server]:
    return [resolve_server(pod) for pod in pods]


def split_by_ns(
    servers: Iterable[Server], namespaces: Iterable[str]
) -> dict[str, list[Server]]:
    """Group servers by namespace, keeping only the allowed namespaces."""
    allowed = set(namespaces)
    ns_servers: dict[str, list[Server]] = {}
    for server in servers:
        if server.namespace is None:
            logger.debug(f'Pod "{server.name}" eliminated (no namespace)')
            continue
        if server.namespace not in allowed:
            logger.debug(
                f'Pod "{server.name}" (from namespace: "{server.namespace}") eliminated'
            )
            continue
        ns_servers.setdefault(server.namespace, []).append(server)
    return ns_servers


def split_by_set(
    servers: Iterable[Server], sets: Iterable[str]
) -> dict[str, list[Server]]:
    """Group servers by owning set, keeping only the allowed sets."""
    allowed = set(sets)
    set_servers: dict[str, list[Server]] = {}
    for server in servers:
        if server.set is None:
            logger.debug(f'Pod "{server.name}" eliminated (no owning set)')
            continue
        if server.set not in allowed:
            logger.debug(f'Pod "{server.name}" (from set: "{server.set}") eliminated')
            continue
        set_servers.setdefault(server.set, []).append(server)
    return set_servers
