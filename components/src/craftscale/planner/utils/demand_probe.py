# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from craftscale.planner.defaults import DEFAULT_RCON_PORT
from craftscale.planner.utils.concurrency import gather_bounded, remaining_time
from craftscale.planner.utils.exceptions import ProbeError
from craftscale.planner.utils.rcon import RconClient, RconError
from craftscale.planner.utils.servers import Server, SetKey

logger = logging.getLogger(__name__)

LIST_COMMAND = "list"

# "There are 7 of a max 20 players online: Alice, Bob"
# Newer servers say "of a max of 20"
_LIST_RESPONSE = re.compile(
    r"^There are (?P<online>\d+) of a max (?:of )?(?P<max>\d+) players online:"
)


def parse_player_count(response: str, server: str = "unknown") -> int:
    """Extract the number of online players from a ``list`` reply.

    Raises:
        ProbeError: If the reply does not follow the expected grammar
    """
    match = _LIST_RESPONSE.match(response or "")
    if match is None:
        raise ProbeError(server, f"unexpected list response {response!r}")
    return int(match.group("online"))


@dataclass
class SetDemand:
    # Sum of the successfully probed player counts
    players: int = 0
    probed: list[str] = field(default_factory=list)
    # Servers without an address (not probed, not counted)
    unreachable: list[str] = field(default_factory=list)
    errors: list[ProbeError] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """Whether every addressable server of the set answered."""
        return not self.errors


class DemandProber:
    """Reads the player count of every server through its RCON console.

    Each probe opens its own session, sends one ``list`` command and
    closes it. At most ``concurrency`` sessions are open at the same time.
    """

    def __init__(
        self,
        password: str,
        port: int = DEFAULT_RCON_PORT,
        concurrency: int = 3,
        timeout: Optional[float] = None,
        client_factory: Callable[..., RconClient] = RconClient,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.password = password
        self.port = port
        self.concurrency = concurrency
        self.timeout = timeout
        self.client_factory = client_factory

    async def probe_server(self, server: Server) -> int:
        """Return the number of players connected to one server.

        Raises:
            ProbeError: If the console cannot be reached or its reply parsed
        """
        if server.fqdn is None:
            raise ProbeError(server.name, "no network address")
        client = self.client_factory(
            server.fqdn, port=self.port, password=self.password, timeout=self.timeout
        )
        try:
            async with client:
                response = await client.command(LIST_COMMAND)
        except RconError as e:
            raise ProbeError(server.name, str(e)) from e
        players = parse_player_count(response, server.name)
        logger.debug(f'Server "{server.name}" ({server.fqdn}): {players} player(s)')
        return players

    async def probe_sets(
        self,
        sets: dict[SetKey, list[Server]],
        deadline: Optional[float] = None,
    ) -> dict[SetKey, SetDemand]:
        """Probe every addressable server and sum the counts per set."""
        demands: dict[SetKey, SetDemand] = {key: SetDemand() for key in sets}
        jobs = {}
        for key, servers in sets.items():
            # Names may repeat (unnamed pods), the position in the set may not
            for index, server in enumerate(servers):
                if server.fqdn is None:
                    logger.warning(
                        f'Server "{server.name}" of set {key} has no address, not probed'
                    )
                    demands[key].unreachable.append(server.name)
                    continue
                jobs[(key, index)] = lambda server=server: self.probe_server(server)

        outcomes = await gather_bounded(
            jobs, self.concurrency, timeout=remaining_time(deadline)
        )

        for (key, index), outcome in outcomes.items():
            demand = demands[key]
            server_name = sets[key][index].name
            if isinstance(outcome, ProbeError):
                error = outcome
            elif isinstance(outcome, asyncio.TimeoutError):
                error = ProbeError(server_name, "tick deadline expired")
                error.__cause__ = outcome
            elif isinstance(outcome, BaseException):
                error = ProbeError(server_name, str(outcome) or type(outcome).__name__)
                error.__cause__ = outcome
            else:
                demand.players += outcome
                demand.probed.append(server_name)
                continue
            logger.warning(f"{error}")
            demand.errors.append(error)

        for key, demand in demands.items():
            logger.info(
                f"Set {key}: {demand.players} player(s) on {len(demand.probed)} "
                f"server(s), {len(demand.errors)} failed probe(s)"
            )
        return demands
