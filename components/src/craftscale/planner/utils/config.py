# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Planner configuration file (TOML) and its validated representation.

Example::

    [redis]
    url = "redis://:password@redis.domain.tld"
    prefix = "craftscale"

    [[namespace]]
    kname = "minecraft"

      [[namespace.set]]
      kname = "lobby"
      proxy = false
      already_connected = 0
      players_per_server = 20

        [[namespace.set.strategies]]
        min_player = 50
        backup_server = 2

        [[namespace.set.strategies]]
        backup_server = 0
"""

import logging
import tomllib
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from craftscale.planner.utils.exceptions import ConfigError
from craftscale.planner.utils.strategy import Strategy, evaluate

logger = logging.getLogger(__name__)


class RedisSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    # The redis server URL (eg: `redis://:password@redis.domain.tld`)
    url: str
    # Prefix of every key written by the planner
    prefix: Optional[str] = None

    def key_prefix(self) -> str:
        """Return the key prefix with its trailing dot, or "" without prefix."""
        if self.prefix:
            return f"{self.prefix}."
        return ""


class SetConfig(BaseModel):
    """A StatefulSet of interchangeable game servers sharing one scaling policy"""

    model_config = ConfigDict(frozen=True)

    # The kubernetes name of the StatefulSet
    kname: str = Field(min_length=1)
    # Whether this set is a proxy tier (like BungeeCord)
    proxy: bool = False
    # Servers already running outside of the cluster (VPS, dedicated server)
    already_connected: int = Field(default=0, ge=0)
    # Maximum players on one instance
    players_per_server: int = Field(gt=0)
    # Ordered strategies, the first applicable one wins
    strategies: Tuple[Strategy, ...] = ()

    def get_replicas(self, proxy_players: int, set_players: int) -> int:
        """Number of replicas this set needs for the given player counts."""
        return evaluate(
            proxy_players,
            set_players,
            self.strategies,
            self.players_per_server,
            self.already_connected,
        )


class NamespaceConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # The kubernetes namespace
    kname: str = Field(min_length=1)
    sets: Tuple[SetConfig, ...] = Field(default=(), alias="set")

    @model_validator(mode="after")
    def _unique_sets(self) -> "NamespaceConfig":
        names = [s.kname for s in self.sets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(
                f'duplicate set names in namespace "{self.kname}": {duplicates}'
            )
        return self

    def set_names(self) -> list[str]:
        return [s.kname for s in self.sets]

    def proxy_set_names(self) -> list[str]:
        return [s.kname for s in self.sets if s.proxy]


class Config(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    redis: RedisSection
    namespaces: Tuple[NamespaceConfig, ...] = Field(default=(), alias="namespace")

    @model_validator(mode="after")
    def _unique_namespaces(self) -> "Config":
        names = self.namespace_names()
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate namespace names: {duplicates}")
        return self

    def namespace_names(self) -> list[str]:
        return [ns.kname for ns in self.namespaces]

    def get_namespace(self, namespace: str) -> Optional[NamespaceConfig]:
        for ns in self.namespaces:
            if ns.kname == namespace:
                return ns
        return None

    def set_names(self, namespace: str) -> list[str]:
        ns = self.get_namespace(namespace)
        return ns.set_names() if ns is not None else []


def parse_config(contents: Union[str, bytes], path: Optional[str] = None) -> Config:
    """Parse and validate TOML configuration text.

    Raises:
        ConfigError: If the text is not TOML or does not match the schema
    """
    if isinstance(contents, bytes):
        try:
            contents = contents.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigError(f"not valid UTF-8: {e}", path) from e
    try:
        raw = tomllib.loads(contents)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML: {e}", path) from e
    try:
        return Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}", path) from e


def load_config(path: Union[str, Path]) -> Config:
    """Read the configuration file at ``path``.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    logger.info(f'Loading configuration from "{path}"...')
    try:
        contents = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"cannot read configuration file: {e}", str(path)) from e
    config = parse_config(contents, str(path))
    logger.info(
        f"Loaded configuration: {len(config.namespaces)} namespace(s), "
        f"{sum(len(ns.sets) for ns in config.namespaces)} set(s)"
    )
    return config
