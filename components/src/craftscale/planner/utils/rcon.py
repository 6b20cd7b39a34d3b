# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Minimal RCON client: authenticate, send one command, read the reply.

Packets use the Source RCON framing spoken by Minecraft servers, all
integers little endian::

    <int32 length> <int32 request id> <int32 type> <body> 0x00 0x00

where ``length`` counts every byte after itself.
"""

import asyncio
import logging
import struct
from typing import Optional

from craftscale.planner.defaults import DEFAULT_RCON_PORT

logger = logging.getLogger(__name__)

SERVERDATA_RESPONSE_VALUE = 0
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_AUTH = 3

# request id the server answers with when the password is wrong
AUTH_FAILED_ID = -1

_HEADER = struct.Struct("<iii")
_LENGTH = struct.Struct("<i")
_PADDING = b"\x00\x00"
_MIN_PACKET_LENGTH = _HEADER.size - _LENGTH.size + len(_PADDING)
_MAX_PACKET_LENGTH = 1 << 16


class RconError(Exception):
    """Transport, framing or authentication failure of an RCON session."""


def encode_packet(request_id: int, packet_type: int, body: str) -> bytes:
    payload = body.encode("utf-8")
    length = _HEADER.size - _LENGTH.size + len(payload) + len(_PADDING)
    return _HEADER.pack(length, request_id, packet_type) + payload + _PADDING


def decode_packet(data: bytes) -> tuple[int, int, str]:
    """Decode a packet without its length prefix into (id, type, body)."""
    if len(data) < _MIN_PACKET_LENGTH:
        raise RconError(f"Packet too short ({len(data)} bytes)")
    request_id, packet_type = struct.unpack_from("<ii", data)
    body = data[8:]
    if body.endswith(_PADDING):
        body = body[: -len(_PADDING)]
    return request_id, packet_type, body.decode("utf-8", errors="replace")


class RconClient:
    """One RCON session to one server. Not safe for concurrent commands."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_RCON_PORT,
        password: str = "",
        timeout: Optional[float] = None,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._next_id = 0

    async def __aenter__(self) -> "RconClient":
        await self.connect()
        try:
            await self.authenticate()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _with_timeout(self, awaitable):
        if self.timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            raise RconError(
                f"{self.host}:{self.port} did not answer within {self.timeout}s"
            ) from e

    async def connect(self) -> None:
        try:
            self._reader, self._writer = await self._with_timeout(
                asyncio.open_connection(self.host, self.port)
            )
        except OSError as e:
            raise RconError(f"Cannot connect to {self.host}:{self.port}: {e}") from e
        logger.debug(f"RCON connected to {self.host}:{self.port}")

    async def close(self) -> None:
        if self._writer is None:
            return
        writer, self._writer, self._reader = self._writer, None, None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error while closing RCON session to {self.host}: {e}")

    async def _send(self, packet_type: int, body: str) -> int:
        if self._writer is None:
            raise RconError("RCON session is not connected")
        self._next_id += 1
        request_id = self._next_id
        self._writer.write(encode_packet(request_id, packet_type, body))
        try:
            await self._with_timeout(self._writer.drain())
        except OSError as e:
            raise RconError(f"Write to {self.host}:{self.port} failed: {e}") from e
        return request_id

    async def _read(self) -> tuple[int, int, str]:
        if self._reader is None:
            raise RconError("RCON session is not connected")
        try:
            raw_length = await self._with_timeout(
                self._reader.readexactly(_LENGTH.size)
            )
            (length,) = _LENGTH.unpack(raw_length)
            if not _MIN_PACKET_LENGTH <= length <= _MAX_PACKET_LENGTH:
                raise RconError(f"Invalid packet length {length}")
            data = await self._with_timeout(self._reader.readexactly(length))
        except asyncio.IncompleteReadError as e:
            raise RconError(
                f"Connection to {self.host}:{self.port} closed by the server"
            ) from e
        except OSError as e:
            raise RconError(f"Read from {self.host}:{self.port} failed: {e}") from e
        return decode_packet(data)

    async def authenticate(self) -> None:
        request_id = await self._send(SERVERDATA_AUTH, self.password)
        while True:
            response_id, packet_type, _ = await self._read()
            # Some servers send an empty value packet ahead of the auth response
            if packet_type == SERVERDATA_AUTH_RESPONSE:
                break
        if response_id == AUTH_FAILED_ID:
            raise RconError(f"Authentication to {self.host}:{self.port} failed")
        if response_id != request_id:
            raise RconError(
                f"Unexpected auth response id {response_id} (expected {request_id})"
            )

    async def command(self, command: str) -> str:
        """Run one console command and return its text output."""
        request_id = await self._send(SERVERDATA_EXECCOMMAND, command)
        response_id, packet_type, body = await self._read()
        if response_id != request_id or packet_type != SERVERDATA_RESPONSE_VALUE:
            raise RconError(
                f"Unexpected response (id={response_id}, type={packet_type}) "
                f"to request {request_id}"
            )
        return body
