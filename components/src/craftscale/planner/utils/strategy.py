# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Backup-capacity strategies and the desired replica computation.

A set declares an ordered list of strategies. The first one whose four
inclusive thresholds all hold decides how many backup servers run on top
of the servers strictly needed by the current players.
"""

import logging
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from craftscale.planner.defaults import DEFAULT_BACKUP_SERVERS, MIN_REPLICAS

logger = logging.getLogger(__name__)


class Strategy(BaseModel):
    """Threshold rule mapping observed load to a number of backup servers"""

    model_config = ConfigDict(frozen=True)

    # Players connected to the proxies (unset min = 0, unset max = unbounded)
    min_proxy_player: Optional[int] = Field(default=None, ge=0)
    max_proxy_player: Optional[int] = Field(default=None, ge=0)

    # Players connected to the set itself
    min_player: Optional[int] = Field(default=None, ge=0)
    max_player: Optional[int] = Field(default=None, ge=0)

    # Pods to keep running beyond the ones needed by the current players
    backup_server: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "Strategy":
        for low, high, label in (
            (self.min_proxy_player, self.max_proxy_player, "proxy_player"),
            (self.min_player, self.max_player, "player"),
        ):
            if low is not None and high is not None and low > high:
                raise ValueError(f"min_{label} ({low}) is greater than max_{label} ({high})")
        return self

    def is_applied(self, proxy_players: int, set_players: int) -> bool:
        """Whether both player counts fall inside this strategy's bounds."""
        min_proxy = self.min_proxy_player if self.min_proxy_player is not None else 0
        min_set = self.min_player if self.min_player is not None else 0
        if proxy_players < min_proxy or set_players < min_set:
            return False
        if self.max_proxy_player is not None and proxy_players > self.max_proxy_player:
            return False
        if self.max_player is not None and set_players > self.max_player:
            return False
        return True


def select_strategy(
    strategies: Sequence[Strategy], proxy_players: int, set_players: int
) -> Optional[Strategy]:
    """Return the first applicable strategy in declared order, if any."""
    for strategy in strategies:
        if strategy.is_applied(proxy_players, set_players):
            return strategy
    return None


def select_backup(
    strategies: Sequence[Strategy], proxy_players: int, set_players: int
) -> int:
    strategy = select_strategy(strategies, proxy_players, set_players)
    if strategy is None:
        return DEFAULT_BACKUP_SERVERS
    return strategy.backup_server


def evaluate(
    proxy_players: int,
    set_players: int,
    strategies: Sequence[Strategy],
    players_per_server: int,
    already_connected: int,
) -> int:
    """Compute the number of replicas a set should run.

    needed = ceil(set_players / players_per_server)
    desired = needed + backup - already_connected, never below MIN_REPLICAS

    Args:
        proxy_players: Players connected to the proxy tier
        set_players: Players connected to the set
        strategies: Ordered strategies of the set
        players_per_server: Capacity of one server (> 0)
        already_connected: Servers of the set running outside the cluster

    Returns:
        Desired replica count for the set's StatefulSet
    """
    if min(proxy_players, set_players, already_connected) < 0:
        raise ValueError(
            f"Player and server counts must be non-negative "
            f"(proxy={proxy_players}, set={set_players}, connected={already_connected})"
        )
    if players_per_server <= 0:
        raise ValueError(f"players_per_server must be positive, got {players_per_server}")

    backup = select_backup(strategies, proxy_players, set_players)
    needed = -(-set_players // players_per_server)
    desired = needed + backup - already_connected
    if desired < MIN_REPLICAS:
        logger.debug(
            f"Desired replicas {desired} (needed={needed}, backup={backup}, "
            f"already_connected={already_connected}) clamped to {MIN_REPLICAS}"
        )
        return MIN_REPLICAS
    return desired
