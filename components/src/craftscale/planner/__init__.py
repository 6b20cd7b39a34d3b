# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Planner - scales game-server StatefulSets from their live player counts.

Each tick:
- lists the pods of every configured namespace (bounded concurrency)
- groups them by namespace and owning StatefulSet
- reads the player count of every pod over RCON
- applies the first matching strategy of each set to get its replicas
- forwards the replica counts to the scaling connector

Usage:
    CRAFTSCALE_RCON_PASSWORD=secret python -m craftscale.planner --config config.toml
"""

__all__ = [
    "KubernetesConnector",
    "NoOpConnector",
    "PlannerConnector",
    "ScaleResponse",
    "ScaleStatus",
    "TargetReplica",
]

from craftscale.planner.kubernetes_connector import KubernetesConnector
from craftscale.planner.planner_connector import NoOpConnector, PlannerConnector
from craftscale.planner.scale_protocol import ScaleResponse, ScaleStatus, TargetReplica
