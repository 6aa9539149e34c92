"""
ABOS1 side of the exchange.

Listens on the forward path, reads one line per connection and answers it
over the return path with a fresh, source-bound connection. Clients are
handled strictly one at a time; extras wait in the listen backlog.
"""
import asyncio
import logging
import socket
import sys
from .config import Config
from .dialer import Dialer
from .lifecycle import Lifecycle
from .line_io import read_line, write_line
from .log import RECV, SEND, log_listening
from .messages import compose_reply
from .util import accept_stream, close_quietly, close_socket_quietly, get_remote_addr, open_listener

logger = logging.getLogger(__name__)


class Responder:
    def __init__(self, config: Config):
        self.config = config
        self.dialer = Dialer(config.timing.retry_delay)
        self.lifecycle = Lifecycle()
        self.listener: socket.socket | None = None
        self.requests_handled = 0

    def run(self) -> int:
        return self.lifecycle.run(self.serve)

    async def serve(self, max_requests: int | None = None) -> None:
        self.startup()
        try:
            await self.main_loop(max_requests)
        finally:
            self.shutdown()

    def startup(self) -> None:
        net = self.config.net
        if not net.paths_separated():
            logger.warning(
                "Forward listen %s and return listen %s share a subnet; paths are not separated",
                net.forward_listen.ip, net.return_listen.ip,
            )
        try:
            self.listener = open_listener(
                net.forward_listen.ip, net.forward_listen.port, self.config.timing.listen_backlog
            )
        except OSError as exc:
            logger.error("Failed to start server on %s: %s", net.forward_listen, exc)
            sys.exit(1)
        log_listening(logger, self.listener)

    def shutdown(self) -> None:
        close_socket_quietly(self.listener)
        self.listener = None

    async def main_loop(self, max_requests: int | None = None) -> None:
        served = 0
        while max_requests is None or served < max_requests:
            try:
                reader, writer = await self._accept()
            except asyncio.TimeoutError:
                logger.warning("Socket timeout, continuing...")
                continue
            except OSError as exc:
                logger.error("Error accepting client connection: %s", exc)
                continue
            served += 1
            await self.handle_client(reader, writer)

    async def _accept(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        timeout = self.config.timing.accept_timeout
        if timeout is None:
            return await accept_stream(self.listener)
        return await asyncio.wait_for(accept_stream(self.listener), timeout)

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> str | None:
        """Serve one forward connection; returns the reply sent, if any."""
        peer = get_remote_addr(writer)
        forward = self.config.net.forward_listen
        try:
            logger.info("Connection accepted from %s", "%s:%d" % peer if peer else "unknown peer")
            try:
                incoming = await read_line(reader)
            except OSError as exc:
                logger.error("Error handling client connection: %s", exc)
                return None
            if incoming is None:
                logger.warning("Peer disconnected during receive")
                return None
            logger.log(RECV, "Message via %s: %s", forward, incoming)
        finally:
            await close_quietly(writer)

        reply = compose_reply(self.config.identity, self.config.net.return_src, incoming)
        await self.send_reply(reply)
        self.requests_handled += 1
        return reply

    async def send_reply(self, reply: str) -> None:
        net = self.config.net
        logger.info("Attempting response connection to %s", net.return_dial)
        _reader, writer = await self.dialer.dial(net.return_dial, net.return_src)
        try:
            await write_line(writer, reply)
            logger.log(SEND, "Response sent via %s: %s", net.return_src, reply)
        except OSError as exc:
            logger.error("Failed to send response: %s", exc)
        finally:
            await close_quietly(writer)
