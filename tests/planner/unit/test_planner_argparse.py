# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for planner argument parsing and validation."""

import pytest

from craftscale.planner.defaults import DEFAULT_RCON_PORT
from craftscale.planner.utils.planner_argparse import (
    create_planner_parser,
    validate_planner_args,
)

pytestmark = [
    pytest.mark.unit,
    pytest.mark.planner,
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "CRAFTSCALE_CONFIG",
        "CRAFTSCALE_CONCURRENCY",
        "CRAFTSCALE_RCON_PASSWORD",
        "CRAFTSCALE_PROXY_PLAYERS",
        "CRAFTSCALE_TICK_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Test defaults when no flag and no env var is given."""
    args = create_planner_parser().parse_args([])

    assert args.config == "./config.toml"
    assert args.kube_config is None
    assert args.concurrency == 3
    assert args.rcon_port == DEFAULT_RCON_PORT
    assert args.proxy_players is None
    assert args.tick_timeout is None
    assert args.adjustment_interval == 0.0
    assert args.metric_reporting_prometheus_port == 0
    validate_planner_args(args)


def test_flags_are_typed():
    args = create_planner_parser().parse_args(
        [
            "--config",
            "/etc/craftscale/config.toml",
            "--concurrency",
            "8",
            "--tick-timeout",
            "12.5",
            "--proxy-players",
            "40",
        ]
    )

    assert args.config == "/etc/craftscale/config.toml"
    assert args.concurrency == 8
    assert args.tick_timeout == 12.5
    assert args.proxy_players == 40


def test_env_var_sets_default(monkeypatch):
    """Test environment variables override built-in defaults but not flags."""
    monkeypatch.setenv("CRAFTSCALE_CONCURRENCY", "5")
    monkeypatch.setenv("CRAFTSCALE_RCON_PASSWORD", "hunter2")

    args = create_planner_parser().parse_args([])
    assert args.concurrency == 5
    assert args.rcon_password == "hunter2"

    args = create_planner_parser().parse_args(["--concurrency", "2"])
    assert args.concurrency == 2


def test_password_default_is_hidden_from_help(monkeypatch):
    monkeypatch.setenv("CRAFTSCALE_RCON_PASSWORD", "hunter2")
    help_text = create_planner_parser().format_help()
    assert "hunter2" not in help_text


def test_parser_rejects_non_numeric_concurrency():
    with pytest.raises(SystemExit):
        create_planner_parser().parse_args(["--concurrency", "many"])


@pytest.mark.parametrize(
    "argv, message",
    [
        (["--concurrency", "0"], "--concurrency"),
        (["--probe-timeout", "0"], "--probe-timeout"),
        (["--tick-timeout", "-1"], "--tick-timeout"),
        (["--rcon-port", "70000"], "--rcon-port"),
        (["--proxy-players", "-3"], "--proxy-players"),
        (["--adjustment-interval", "-1"], "--adjustment-interval"),
        (["--metric-reporting-prometheus-port", "-1"], "--metric-reporting-prometheus-port"),
    ],
)
def test_validate_rejects_invalid_values(argv, message):
    args = create_planner_parser().parse_args(argv)
    with pytest.raises(ValueError, match=message):
        validate_planner_args(args)
