# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from typing import Optional

# Default port of the Minecraft RCON listener
DEFAULT_RCON_PORT = 25575

# Backup servers used when no strategy of a set applies
DEFAULT_BACKUP_SERVERS = 1

# Lower bound applied to every computed replica count
MIN_REPLICAS = 0


class PlannerDefaults:
    config = "./config.toml"
    kube_config: Optional[str] = None
    concurrency = 3
    discovery_timeout: Optional[float] = None
    probe_timeout: Optional[float] = 5.0
    tick_timeout: Optional[float] = None
    rcon_port = DEFAULT_RCON_PORT
    rcon_password = ""
    proxy_players: Optional[int] = None
    adjustment_interval = 0.0  # seconds, 0 runs a single tick
    metric_reporting_prometheus_port = 0
