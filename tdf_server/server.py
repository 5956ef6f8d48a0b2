"""TCP server for TDF game clients.

Each accepted client gets its own connection task.  Packets on one
connection are read and decoded strictly in order; the first protocol
violation closes that connection.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Set

from .config.models import CodecConfig, ServerConfig
from .exceptions import TdfError
from .models.tdf import LabeledTdf
from .network.codec import TdfDecoder
from .network.framing import Packet, read_packet
from .utils.logging import get_logger

logger = get_logger(__name__)

PacketHandler = Callable[["TDFConnection", Packet, list[LabeledTdf]], Awaitable[None]]


class TDFConnection:
    """Represents a TCP client connection."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: ServerConfig,
        decoder: TdfDecoder,
        on_packet: Optional[PacketHandler] = None,
        log_values: bool = True,
    ):
        """Initialize TCP connection.

        Args:
            reader: Async stream reader
            writer: Async stream writer
            config: Server configuration
            decoder: Decoder for packet content
            on_packet: Called with every decoded packet
            log_values: Log decoded values at debug level
        """
        self.reader = reader
        self.writer = writer
        self.config = config
        self.decoder = decoder
        self.on_packet = on_packet
        self.log_values = log_values
        self.packets_received = 0
        self.closed = False

        peername = writer.get_extra_info("peername")
        self.remote_address = f"{peername[0]}:{peername[1]}" if peername else "unknown"
        self.logger = logger.bind(peer=self.remote_address)

        self.logger.info("client_connected")

    async def handle(self):
        """Read and decode packets until the client leaves or misbehaves."""
        try:
            while not self.closed:
                packet = await read_packet(
                    self.reader,
                    max_content_length=self.config.max_packet_size,
                    timeout=self.config.read_timeout or None,
                )
                if packet is None:
                    break

                values = self.decoder.decode(packet.content)
                self.packets_received += 1
                self._log_packet(packet, values)

                if self.on_packet:
                    await self.on_packet(self, packet, values)

        except asyncio.TimeoutError:
            self.logger.info("client_timed_out", timeout=self.config.read_timeout)
        except TdfError as e:
            self.logger.warning(
                "protocol_violation",
                error=str(e),
                error_type=type(e).__name__,
                packets_received=self.packets_received,
            )
        except (ConnectionError, OSError) as e:
            self.logger.info("connection_error", error=str(e))
        finally:
            await self.close()

    def _log_packet(self, packet: Packet, values: list[LabeledTdf]) -> None:
        event: dict[str, Any] = {
            "component": packet.component,
            "command": packet.command,
            "error": packet.error,
            "qtype": packet.qtype,
            "id": packet.id,
            "content_length": len(packet.content),
        }
        if self.log_values:
            event["values"] = [labeled.to_python() for labeled in values]
        self.logger.debug("packet_received", **event)

    async def send_packet(self, packet: Packet) -> None:
        """Encode and send a packet to the client."""
        if self.closed:
            return

        try:
            self.writer.write(packet.encode())
            await self.writer.drain()
        except (ConnectionError, OSError) as e:
            self.logger.error("send_failed", error=str(e))
            self.closed = True

    async def close(self):
        """Close the connection."""
        if self.closed and self.writer.is_closing():
            return

        self.closed = True

        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            self.logger.debug("close_failed", error=str(e))

        self.logger.info("client_disconnected", packets_received=self.packets_received)


class TDFServer:
    """TCP server accepting TDF game clients."""

    def __init__(
        self,
        config: ServerConfig,
        codec: Optional[CodecConfig] = None,
        on_packet: Optional[PacketHandler] = None,
    ):
        """Initialize TCP server.

        Args:
            config: Listening address and connection limits
            codec: Decoder settings
            on_packet: Called with every decoded packet
        """
        self.config = config
        self.codec = codec or CodecConfig()
        self.on_packet = on_packet
        self.decoder = TdfDecoder(max_depth=self.codec.max_depth)
        self.server: Optional[asyncio.Server] = None
        self.connections: Set[TDFConnection] = set()

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """Bound (host, port), once started."""
        if not self.server or not self.server.sockets:
            return None
        sockname = self.server.sockets[0].getsockname()
        return sockname[0], sockname[1]

    async def start(self):
        """Start listening."""
        self.server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port,
        )

        host, port = self.address
        logger.info("server_listening", host=host, port=port)

    async def serve(self):
        """Serve connections until cancelled."""
        if not self.server:
            await self.start()

        async with self.server:
            await self.server.serve_forever()

    async def handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter
    ):
        """Handle a new TCP client connection.

        Args:
            reader: Stream reader
            writer: Stream writer
        """
        if len(self.connections) >= self.config.max_connections:
            logger.warning(
                "connection_limit_reached",
                max_connections=self.config.max_connections,
            )
            writer.close()
            await writer.wait_closed()
            return

        connection = TDFConnection(
            reader,
            writer,
            self.config,
            self.decoder,
            on_packet=self.on_packet,
            log_values=self.codec.log_values,
        )

        self.connections.add(connection)

        try:
            await connection.handle()
        finally:
            self.connections.discard(connection)

    async def stop(self):
        """Stop the server and close every connection."""
        logger.info("server_stopping")

        for conn in list(self.connections):
            await conn.close()

        if self.server:
            self.server.close()
            await self.server.wait_closed()

        logger.info("server_stopped")

    def get_connection_count(self) -> int:
        """Get number of active connections."""
        return len(self.connections)

    def get_statistics(self) -> dict[str, Any]:
        """Get server statistics."""
        return {
            "total_connections": len(self.connections),
            "packets_received": sum(conn.packets_received for conn in self.connections),
            "max_connections": self.config.max_connections,
            "port": self.address[1] if self.address else self.config.port,
        }
