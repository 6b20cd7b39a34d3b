# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the entry point exit codes and error-chain logging."""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from craftscale.planner import __main__ as planner_main
from craftscale.planner.utils.exceptions import ConfigError, PlannerConnectionError
from craftscale.runtime.logging import iter_causes, log_error_chain

pytestmark = [
    pytest.mark.unit,
    pytest.mark.planner,
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CRAFTSCALE_CONCURRENCY", raising=False)
    monkeypatch.delenv("CRAFTSCALE_ADJUSTMENT_INTERVAL", raising=False)


@pytest.mark.parametrize(
    "error, code",
    [
        (None, planner_main.EXIT_OK),
        (ConfigError("invalid TOML", path="config.toml"), planner_main.EXIT_CONFIG_ERROR),
        (PlannerConnectionError("redis", "refused"), planner_main.EXIT_CONNECTION_ERROR),
        (RuntimeError("boom"), planner_main.EXIT_FAILURE),
    ],
    ids=["ok", "config", "connection", "other"],
)
def test_exit_codes(error, code):
    with patch.object(
        planner_main, "start_planner", AsyncMock(side_effect=error)
    ) as start:
        assert planner_main.main(["--config", "config.toml"]) == code
    start.assert_awaited_once()


def test_invalid_arguments_exit_before_running(capsys):
    with patch.object(planner_main, "start_planner", AsyncMock()) as start:
        assert planner_main.main(["--concurrency", "0"]) == planner_main.EXIT_CONFIG_ERROR
    start.assert_not_awaited()
    assert "usage" in capsys.readouterr().err


def test_missing_config_file(tmp_path):
    code = planner_main.main(["--config", str(tmp_path / "absent.toml")])
    assert code == planner_main.EXIT_CONFIG_ERROR


def _raise_chain():
    try:
        try:
            raise OSError("connection reset")
        except OSError as e:
            raise PlannerConnectionError("redis", "ping failed") from e
    except PlannerConnectionError as e:
        return e


def test_iter_causes_walks_the_chain():
    err = _raise_chain()
    assert [type(c) for c in iter_causes(err)] == [OSError]
    assert list(iter_causes(ValueError("alone"))) == []


def test_log_error_chain(caplog):
    logger = logging.getLogger("craftscale.test")
    with caplog.at_level(logging.ERROR, logger="craftscale.test"):
        log_error_chain(logger, _raise_chain())

    messages = [r.getMessage() for r in caplog.records]
    assert messages[0] == "PlannerConnectionError: Connection to redis failed: ping failed"
    assert messages[1] == "causes [1]: OSError: connection reset"
    assert messages[2].startswith("backtrace:\n")
