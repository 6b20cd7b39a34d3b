# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Planner entry point.

Usage:
    python -m craftscale.planner --config ./config.toml

Exit codes: 0 success, 1 unexpected error, 2 invalid configuration or
arguments, 3 cluster or redis unreachable.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from craftscale.planner.utils.config import load_config
from craftscale.planner.utils.exceptions import ConfigError, PlannerConnectionError
from craftscale.planner.utils.planner_argparse import (
    create_planner_parser,
    validate_planner_args,
)
from craftscale.planner.utils.planner_core import BasePlanner
from craftscale.runtime.logging import configure_craftscale_logging, log_error_chain

configure_craftscale_logging()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_CONNECTION_ERROR = 3


async def start_planner(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    planner = BasePlanner(config, args)
    try:
        await planner.run()
    finally:
        await planner.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = create_planner_parser()
    args = parser.parse_args(argv)

    try:
        validate_planner_args(args)
    except ValueError as e:
        parser.print_usage(sys.stderr)
        log_error_chain(logger, e)
        return EXIT_CONFIG_ERROR

    logger.info("Starting planner")
    try:
        asyncio.run(start_planner(args))
    except ConfigError as e:
        log_error_chain(logger, e)
        return EXIT_CONFIG_ERROR
    except PlannerConnectionError as e:
        log_error_chain(logger, e)
        return EXIT_CONNECTION_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_OK
    except Exception as e:
        log_error_chain(logger, e)
        return EXIT_FAILURE

    logger.info("Bye!")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
