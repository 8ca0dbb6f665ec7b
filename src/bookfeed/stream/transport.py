"""Resolve, connect and TLS-wrap the raw socket under the WebSocket."""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl
from dataclasses import dataclass

from .errors import ResolutionError, SecureHandshakeError, TransportConnectionError

logger = logging.getLogger(__name__)

DEFAULT_STREAM_LIMIT = 2**16


@dataclass(frozen=True, slots=True)
class Endpoint:
    address: str
    port: int
    family: int = socket.AF_INET


@dataclass(slots=True)
class Connection:
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    peer: Endpoint


class Resolver:
    """Turns a host/port pair into candidate endpoints."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop

    async def resolve(self, host: str, port: int | str) -> list[Endpoint]:
        try:
            infos = await self._loop.getaddrinfo(
                host, port, type=socket.SOCK_STREAM, proto=socket.IPPROTO_TCP
            )
        except (socket.gaierror, OSError, UnicodeError) as exc:
            raise ResolutionError(str(exc) or exc.__class__.__name__) from exc

        endpoints: list[Endpoint] = []
        for family, _type, _proto, _canonname, sockaddr in infos:
            endpoint = Endpoint(sockaddr[0], sockaddr[1], family)
            if endpoint not in endpoints:
                endpoints.append(endpoint)

        if not endpoints:
            raise ResolutionError(f"no addresses found for {host}:{port}")

        logger.debug("resolved %s:%s to %d endpoint(s)", host, port, len(endpoints))
        return endpoints


class Connector:
    """Opens a TCP stream to the first reachable endpoint.

    The timeout bounds the whole attempt across every candidate, not each
    candidate individually.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, *, timeout: float = 30.0):
        self._loop = loop
        self.timeout = timeout

    async def connect(self, endpoints: list[Endpoint]) -> Connection:
        if not endpoints:
            raise TransportConnectionError("no endpoints to connect to")

        errors: list[str] = []
        try:
            async with asyncio.timeout(self.timeout):
                for endpoint in endpoints:
                    try:
                        return await self._open(endpoint)
                    except OSError as exc:
                        logger.debug("connect to %s:%s failed: %s", endpoint.address, endpoint.port, exc)
                        errors.append(f"{endpoint.address}:{endpoint.port}: {exc}")
        except TimeoutError as exc:
            raise TransportConnectionError(f"timed out after {self.timeout:g}s") from exc

        raise TransportConnectionError("; ".join(errors))

    async def _open(self, endpoint: Endpoint) -> Connection:
        reader = asyncio.StreamReader(limit=DEFAULT_STREAM_LIMIT, loop=self._loop)
        protocol = asyncio.StreamReaderProtocol(reader, loop=self._loop)
        transport, _ = await self._loop.create_connection(
            lambda: protocol, endpoint.address, endpoint.port, family=endpoint.family
        )
        writer = asyncio.StreamWriter(transport, protocol, reader, self._loop)

        peername = transport.get_extra_info("peername")
        peer = Endpoint(peername[0], peername[1], endpoint.family) if peername else endpoint
        logger.info("connected to %s:%s", peer.address, peer.port)
        return Connection(reader, writer, peer)


class SecureChannelNegotiator:
    """Performs the client-side TLS handshake over an open connection."""

    def __init__(self, ssl_context: ssl.SSLContext, *, timeout: float = 30.0):
        self._ssl_context = ssl_context
        self.timeout = timeout

    async def negotiate(self, connection: Connection, server_hostname: str) -> None:
        try:
            async with asyncio.timeout(self.timeout):
                await connection.writer.start_tls(
                    self._ssl_context,
                    server_hostname=server_hostname,
                    ssl_handshake_timeout=self.timeout,
                )
        except TimeoutError as exc:
            raise SecureHandshakeError(f"timed out after {self.timeout:g}s") from exc
        except (ssl.SSLError, OSError) as exc:
            raise SecureHandshakeError(str(exc)) from exc

        cipher = connection.writer.get_extra_info("cipher")
        logger.info("TLS established with %s (%s)", server_hostname, cipher[0] if cipher else "unknown cipher")


def create_ssl_context(ca_file: str | None = None) -> ssl.SSLContext:
    """TLS 1.2+ client context verifying peers against the default trust roots."""
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=ca_file)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.verify_mode = ssl.CERT_REQUIRED
    context.check_hostname = True
    return context
