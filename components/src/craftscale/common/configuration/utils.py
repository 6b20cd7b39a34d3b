# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Helpers for CLI flags that can also be set through environment variables."""

import os
from typing import Any, Callable, Optional, TypeVar, Union

T = TypeVar("T")


def env_or_default(
    env_var: str,
    default: T,
    value_type: Optional[Union[type, Callable[..., Any]]] = None,
) -> T:
    """
    Get value from environment variable or return default.

    Args:
        env_var: Environment variable name (e.g., "CRAFTSCALE_CONCURRENCY")
        default: Default value if env var not set
        value_type: Type used to convert the env value. Falls back to
            type(default); when both are None the raw string is returned.

    Returns:
        Environment variable value (type-converted) or default
    """
    value = os.environ.get(env_var)
    if value is None:
        return default

    if value_type is None and default is None:
        return value  # type: ignore[return-value]

    target_type = value_type if value_type is not None else type(default)

    if target_type is bool:
        return value.lower() in ("true", "1", "yes", "on")  # type: ignore
    if target_type is int:
        return int(value)  # type: ignore
    if target_type is float:
        return float(value)  # type: ignore

    return target_type(value) if callable(target_type) else value  # type: ignore


def add_argument(
    parser,
    *,
    flag_name: str,
    env_var: str,
    default: Any,
    help: str,
    arg_type: Optional[Union[type, Callable[..., Any]]] = str,
    **kwargs: Any,
) -> None:
    """
    Add a CLI argument whose default can be overridden by an env var.

    Args:
        parser: ArgumentParser or argument group
        flag_name: Primary flag (must start with '--', e.g., "--foo")
        env_var: Environment variable name (e.g., "CRAFTSCALE_FOO")
        default: Default value
        help: Help text
        arg_type: Type for the argument (default: str)
    """
    arg_dest = _get_dest_name(flag_name, kwargs.pop("dest", None))
    value_type_for_env = arg_type if isinstance(arg_type, type) else None
    default_with_env = env_or_default(env_var, default, value_type=value_type_for_env)

    add_arg_opts = {
        "dest": arg_dest,
        "default": default_with_env,
        "help": _build_help_message(help, env_var, default),
    }
    if arg_type is not None:
        add_arg_opts["type"] = arg_type
    kwargs.update(add_arg_opts)

    parser.add_argument(flag_name, **kwargs)



def _build_help_message(help_text: str, env_var: str, default: Any) -> str:
    if isinstance(default, str) and "password" in env_var.lower():
        default = "<hidden>" if default else default
    return f"{help_text}\nenv var: {env_var} | default: {default}"


def _get_dest_name(flag_name: str, dest: Optional[str] = None) -> str:
    return dest if dest else flag_name.lstrip("-").replace("-", "_")
