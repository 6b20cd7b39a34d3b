# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for configuration loading and validation."""

import pytest

from craftscale.planner.utils.config import (
    Config,
    RedisSection,
    load_config,
    parse_config,
)
from craftscale.planner.utils.exceptions import ConfigError

pytestmark = [
    pytest.mark.unit,
    pytest.mark.planner,
]


def set_config(config, namespace, set_name):
    return next(
        (s for s in config.get_namespace(namespace).sets if s.kname == set_name), None
    )

VALID_CONFIG = """
[redis]
url = "redis://:secret@redis.local:6379"
prefix = "mc"

[[namespace]]
kname = "survival"

  [[namespace.set]]
  kname = "bungee"
  proxy = true
  players_per_server = 500

  [[namespace.set]]
  kname = "lobby"
  proxy = false
  already_connected = 1
  players_per_server = 20

    [[namespace.set.strategies]]
    min_player = 50
    backup_server = 2

    [[namespace.set.strategies]]
    backup_server = 0

[[namespace]]
kname = "creative"

  [[namespace.set]]
  kname = "build"
  players_per_server = 10
"""


def test_parse_valid_config():
    config = parse_config(VALID_CONFIG)

    assert config.namespace_names() == ["survival", "creative"]
    assert config.set_names("survival") == ["bungee", "lobby"]
    assert config.set_names("missing") == []

    lobby = set_config(config, "survival", "lobby")
    assert lobby is not None
    assert lobby.already_connected == 1
    assert lobby.players_per_server == 20
    assert [s.backup_server for s in lobby.strategies] == [2, 0]
    assert lobby.strategies[0].min_player == 50
    assert lobby.strategies[0].max_player is None

    assert config.get_namespace("survival").proxy_set_names() == ["bungee"]
    assert set_config(config, "creative", "lobby") is None


def test_set_get_replicas_uses_strategies():
    config = parse_config(VALID_CONFIG)
    lobby = set_config(config, "survival", "lobby")
    # ceil(60 / 20) = 3, backup 2, minus 1 connected
    assert lobby.get_replicas(0, 60) == 4
    # ceil(10 / 20) = 1, backup 0, minus 1 connected
    assert lobby.get_replicas(0, 10) == 0


def test_redis_prefix():
    assert RedisSection(url="redis://x", prefix="mc").key_prefix() == "mc."
    assert RedisSection(url="redis://x").key_prefix() == ""


def test_config_is_immutable():
    config = parse_config(VALID_CONFIG)
    with pytest.raises(Exception):
        config.redis = RedisSection(url="redis://other")


def test_zero_players_per_server_is_rejected():
    text = """
[redis]
url = "redis://x"
[[namespace]]
kname = "ns"
  [[namespace.set]]
  kname = "lobby"
  players_per_server = 0
"""
    with pytest.raises(ConfigError, match="players_per_server"):
        parse_config(text)


def test_missing_redis_section_is_rejected():
    with pytest.raises(ConfigError, match="redis"):
        parse_config('[[namespace]]\nkname = "ns"\n')


def test_invalid_toml_is_rejected():
    with pytest.raises(ConfigError, match="invalid TOML"):
        parse_config("[redis\nurl=")


def test_duplicate_set_names_are_rejected():
    text = """
[redis]
url = "redis://x"
[[namespace]]
kname = "ns"
  [[namespace.set]]
  kname = "lobby"
  players_per_server = 10
  [[namespace.set]]
  kname = "lobby"
  players_per_server = 20
"""
    with pytest.raises(ConfigError, match="duplicate set names"):
        parse_config(text)


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(VALID_CONFIG)
    config = load_config(path)
    assert isinstance(config, Config)
    assert config.redis.prefix == "mc"


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read") as exc_info:
        load_config(tmp_path / "absent.toml")
    assert isinstance(exc_info.value.__cause__, OSError)
