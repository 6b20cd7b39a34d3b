# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Process-wide logging setup shared by every craftscale component."""

import logging
import os
import traceback
from typing import Iterator, Optional

LOG_ENV_VAR = "CRAFTSCALE_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Client libraries that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("kubernetes", "urllib3", "asyncio")

_configured = False


def configure_craftscale_logging(level: Optional[str] = None) -> None:
    """Attach a stderr handler to the root logger.

    The level comes from ``level`` or the ``CRAFTSCALE_LOG`` environment
    variable (default ``info``). Calling it more than once is a no-op, so
    every module can call it at import time.
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.environ.get(LOG_ENV_VAR, "info")).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    _configured = True


def iter_causes(err: BaseException) -> Iterator[BaseException]:
    """Yield the chain of exceptions that led to ``err`` (nearest first)."""
    seen = {id(err)}
    current: Optional[BaseException] = err
    while current is not None:
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
        if current is None or id(current) in seen:
            return
        seen.add(id(current))
        yield current


def log_error_chain(logger: logging.Logger, err: BaseException) -> None:
    """Log an error, each of its causes and its traceback when there is one."""
    logger.error(f"{type(err).__name__}: {err}")
    for index, cause in enumerate(iter_causes(err)):
        logger.error(f"causes [{index + 1}]: {type(cause).__name__}: {cause}")
    if err.__traceback__ is not None:
        backtrace = "".join(
            traceback.format_exception(type(err), err, err.__traceback__)
        )
        logger.error(f"backtrace:\n{backtrace}")
