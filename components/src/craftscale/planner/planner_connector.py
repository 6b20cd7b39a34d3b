# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from abc import ABC, abstractmethod

from craftscale.planner.scale_protocol import ScaleResponse, ScaleStatus, TargetReplica
from craftscale.planner.utils.exceptions import EmptyTargetReplicasError

logger = logging.getLogger(__name__)


class PlannerConnector(ABC):
    """Applies the replica counts decided by the planner."""

    @abstractmethod
    async def apply_scale(self, target: TargetReplica) -> ScaleResponse:
        """Ask the cluster to run ``target.desired_replicas`` pods for one set."""

    async def set_component_replicas(
        self, target_replicas: list[TargetReplica]
    ) -> list[ScaleResponse]:
        """Apply a batch of targets, one request per set.

        A failed request is reported in its response and does not stop the
        remaining ones.

        Raises:
            EmptyTargetReplicasError: If target_replicas is empty
        """
        if not target_replicas:
            raise EmptyTargetReplicasError()

        responses = []
        for target in target_replicas:
            try:
                response = await self.apply_scale(target)
            except Exception as e:
                logger.exception(
                    f"Scaling {target.namespace}/{target.set_name} failed: {e}"
                )
                response = ScaleResponse(
                    status=ScaleStatus.ERROR, message=str(e), target=target
                )
            responses.append(response)
        return responses


class NoOpConnector(PlannerConnector):
    """Logs the decisions without touching the cluster."""

    async def apply_scale(self, target: TargetReplica) -> ScaleResponse:
        logger.info(
            f"[no-operation] {target.namespace}/{target.set_name} "
            f"-> {target.desired_replicas} replica(s)"
        )
        return ScaleResponse(
            status=ScaleStatus.SUCCESS,
            message="no-operation mode, nothing applied",
            target=target,
        )
