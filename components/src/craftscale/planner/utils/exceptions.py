# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Error types raised by the planner.

ConfigError and PlannerConnectionError abort a tick. DiscoveryError and
ProbeError describe one namespace or one server and are collected next to
the results of their siblings.
"""

from typing import Optional


class PlannerError(Exception):
    """Base class for every planner error."""


class ConfigError(PlannerError):
    """The configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class PlannerConnectionError(PlannerError):
    """A long-lived session (cluster API, key-value store) could not be opened."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"Connection to {service} failed: {message}")


class DiscoveryError(PlannerError):
    """Listing the pods of one namespace failed."""

    def __init__(self, namespace: str, message: str):
        self.namespace = namespace
        super().__init__(f'Pod discovery failed in namespace "{namespace}": {message}')


class ProbeError(PlannerError):
    """The player count of one server could not be read."""

    def __init__(self, server: str, message: str):
        self.server = server
        super().__init__(f'Probe of server "{server}" failed: {message}')


class EmptyTargetReplicasError(PlannerError):
    def __init__(self):
        super().__init__("target_replicas cannot be empty")
