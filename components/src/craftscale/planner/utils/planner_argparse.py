# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import argparse

from craftscale.common.configuration.utils import add_argument
from craftscale.planner.defaults import PlannerDefaults


def create_planner_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the planner.

    Returns:
        argparse.ArgumentParser: Configured argument parser for the planner
    """
    parser = argparse.ArgumentParser(
        description="Game-server StatefulSet planner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a single tick with ./config.toml
  CRAFTSCALE_RCON_PASSWORD=secret python -m craftscale.planner

  # Run every 30 seconds, probing 5 servers at a time
  python -m craftscale.planner --adjustment-interval 30 --concurrency 5
        """,
    )
    add_argument(
        parser,
        flag_name="--config",
        env_var="CRAFTSCALE_CONFIG",
        default=PlannerDefaults.config,
        help="Path of the TOML configuration file",
    )
    add_argument(
        parser,
        flag_name="--kube-config",
        env_var="CRAFTSCALE_KUBE_CONFIG",
        default=PlannerDefaults.kube_config,
        help="Kube-config file (default: in-cluster service account, then ~/.kube/config)",
    )
    add_argument(
        parser,
        flag_name="--concurrency",
        env_var="CRAFTSCALE_CONCURRENCY",
        default=PlannerDefaults.concurrency,
        arg_type=int,
        help="Maximum number of concurrent namespace listings and of concurrent server probes",
    )
    add_argument(
        parser,
        flag_name="--discovery-timeout",
        env_var="CRAFTSCALE_DISCOVERY_TIMEOUT",
        default=PlannerDefaults.discovery_timeout,
        arg_type=float,
        help="Timeout in seconds of one namespace pod listing",
    )
    add_argument(
        parser,
        flag_name="--probe-timeout",
        env_var="CRAFTSCALE_PROBE_TIMEOUT",
        default=PlannerDefaults.probe_timeout,
        arg_type=float,
        help="Timeout in seconds of each RCON network operation",
    )
    add_argument(
        parser,
        flag_name="--tick-timeout",
        env_var="CRAFTSCALE_TICK_TIMEOUT",
        default=PlannerDefaults.tick_timeout,
        arg_type=float,
        help="Time budget in seconds of discovery plus probing in one tick",
    )
    add_argument(
        parser,
        flag_name="--rcon-port",
        env_var="CRAFTSCALE_RCON_PORT",
        default=PlannerDefaults.rcon_port,
        arg_type=int,
        help="RCON port of the game servers",
    )
    add_argument(
        parser,
        flag_name="--rcon-password",
        env_var="CRAFTSCALE_RCON_PASSWORD",
        default=PlannerDefaults.rcon_password,
        help="RCON password of the game servers",
    )
    add_argument(
        parser,
        flag_name="--proxy-players",
        env_var="CRAFTSCALE_PROXY_PLAYERS",
        default=PlannerDefaults.proxy_players,
        arg_type=int,
        help="Override the proxy player count of every namespace (default: sum of the proxy sets)",
    )
    add_argument(
        parser,
        flag_name="--adjustment-interval",
        env_var="CRAFTSCALE_ADJUSTMENT_INTERVAL",
        default=PlannerDefaults.adjustment_interval,
        arg_type=float,
        help="Seconds between ticks (0 runs a single tick and exits)",
    )
    add_argument(
        parser,
        flag_name="--metric-reporting-prometheus-port",
        env_var="CRAFTSCALE_METRICS_PORT",
        default=PlannerDefaults.metric_reporting_prometheus_port,
        arg_type=int,
        help="Port for exposing planner's own metrics to Prometheus (0 disables)",
    )
    return parser


def validate_planner_args(args: argparse.Namespace) -> None:
    """Validate planner arguments.

    Raises:
        ValueError: If argument constraints are violated
    """
    if args.concurrency < 1:
        raise ValueError(f"--concurrency must be at least 1, got {args.concurrency}")

    for flag in ("discovery_timeout", "probe_timeout", "tick_timeout"):
        value = getattr(args, flag, None)
        if value is not None and value <= 0:
            raise ValueError(
                f"--{flag.replace('_', '-')} must be positive, got {value}"
            )

    if not 0 < args.rcon_port < 65536:
        raise ValueError(f"--rcon-port must be a valid TCP port, got {args.rcon_port}")

    if args.proxy_players is not None and args.proxy_players < 0:
        raise ValueError(
            f"--proxy-players must be non-negative, got {args.proxy_players}"
        )

    if args.adjustment_interval < 0:
        raise ValueError(
            f"--adjustment-interval must be non-negative, got {args.adjustment_interval}"
        )

    if not 0 <= args.metric_reporting_prometheus_port < 65536:
        raise ValueError(
            "--metric-reporting-prometheus-port must be 0 or a valid TCP port, "
            f"got {args.metric_reporting_prometheus_port}"
        )
