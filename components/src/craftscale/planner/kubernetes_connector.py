# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pod discovery through the Kubernetes API."""

import asyncio
import logging
from typing import Any, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from craftscale.planner.utils.exceptions import DiscoveryError, PlannerConnectionError
from craftscale.runtime.logging import configure_craftscale_logging

configure_craftscale_logging()
logger = logging.getLogger(__name__)


class KubernetesConnector:
    """
    Read-only handle on the cluster API shared by every discovery task.

    The kubernetes client is synchronous, so each call runs in a worker
    thread to keep the event loop free while the request is in flight.
    """

    def __init__(
        self,
        kube_config: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        """
        Args:
            kube_config: Explicit kube-config file. When unset, the in-cluster
                service account is tried first, then ``$HOME/.kube/config``.
            request_timeout: Per-request timeout in seconds (None = client default)
        """
        self.kube_config = kube_config
        self.request_timeout = request_timeout
        self.api_client: Optional[client.ApiClient] = None
        self.core_api: Optional[client.CoreV1Api] = None

    def _load_config(self) -> None:
        if self.kube_config:
            config.load_kube_config(config_file=self.kube_config)
            return
        try:
            config.load_incluster_config()
            logger.debug("Using in-cluster Kubernetes configuration")
        except ConfigException:
            config.load_kube_config()
            logger.debug("Using kube-config file")

    def _request_kwargs(self) -> dict[str, Any]:
        if self.request_timeout is None:
            return {}
        return {"_request_timeout": self.request_timeout}

    async def _async_init(self) -> None:
        """Load credentials and check that the API server answers."""
        logger.info("Connection to the Kubernetes cluster...")
        try:
            await asyncio.to_thread(self._load_config)
            self.api_client = client.ApiClient()
            version = await asyncio.to_thread(
                client.VersionApi(self.api_client).get_code, **self._request_kwargs()
            )
        except Exception as e:
            raise PlannerConnectionError("Kubernetes", str(e)) from e
        self.core_api = client.CoreV1Api(self.api_client)
        logger.info(f"Connected to the Kubernetes cluster (version {version.git_version})")

    async def list_pods(self, namespace: str) -> list:
        """List the pods of one namespace.

        Raises:
            DiscoveryError: If the listing fails for any reason
        """
        if self.core_api is None:
            raise RuntimeError("KubernetesConnector not initialized. Call _async_init() first.")

        logger.info(f'Retrieving pods in namespace "{namespace}"...')
        try:
            pods = await asyncio.to_thread(
                self.core_api.list_namespaced_pod, namespace, **self._request_kwargs()
            )
        except ApiException as e:
            raise DiscoveryError(namespace, f"API error {e.status} ({e.reason})") from e
        except Exception as e:
            raise DiscoveryError(namespace, str(e) or type(e).__name__) from e
        items = pods.items or []
        logger.info(f'Retrieved {len(items)} pod(s) in namespace "{namespace}"')
        return items

    async def close(self) -> None:
        if self.api_client is not None:
            await asyncio.to_thread(self.api_client.close)
            self.api_client = None
            self.core_api = None
