"""
ABOS2 side of the exchange.

Each cycle sends one greeting over the forward path, then opens a one-shot
listener on the return path and waits for exactly one reply before
sleeping. The listener is created fresh every cycle and closed at the end
of the phase, so a stuck listener never carries over into the next cycle.
"""
import asyncio
import logging
from .config import Config
from .dialer import Dialer
from .lifecycle import Lifecycle
from .line_io import read_line, write_line
from .log import RECV, SEND, log_listening
from .messages import compose_greeting
from .util import accept_stream, close_quietly, close_socket_quietly, open_listener

logger = logging.getLogger(__name__)


class Initiator:
    def __init__(self, config: Config):
        self.config = config
        self.dialer = Dialer(config.timing.retry_delay)
        self.lifecycle = Lifecycle()
        self.cycles_completed = 0

    def run(self, cycles: int | None = None) -> int:
        return self.lifecycle.run(lambda: self.serve(cycles))

    async def serve(self, cycles: int | None = None) -> None:
        net = self.config.net
        if not net.paths_separated():
            logger.warning(
                "Forward listen %s and return listen %s share a subnet; paths are not separated",
                net.forward_listen.ip, net.return_listen.ip,
            )
        while cycles is None or self.cycles_completed < cycles:
            await self.run_cycle()

    async def run_cycle(self) -> str | None:
        message = compose_greeting(self.config.identity)
        await self.send_phase(message)
        reply = await self.receive_phase()
        self.cycles_completed += 1

        interval = self.config.timing.cycle_interval
        logger.info("Waiting %d ms before next cycle", int(interval * 1000))
        await asyncio.sleep(interval)
        return reply

    async def send_phase(self, message: str) -> None:
        net = self.config.net
        _reader, writer = await self.dialer.dial(net.forward_dial, net.forward_src)
        try:
            await write_line(writer, message)
            logger.log(SEND, "Message sent via %s: %s", net.forward_src, message)
        except OSError as exc:
            logger.error("Failed to send message: %s", exc)
        finally:
            # no half-close handshake; the peer only needs the one line
            await close_quietly(writer)
        logger.info("Outbound connection closed")

    async def receive_phase(self) -> str | None:
        net = self.config.net
        logger.info("Starting inbound server to wait for response")
        try:
            listener = open_listener(
                net.return_listen.ip, net.return_listen.port, self.config.timing.listen_backlog
            )
        except OSError as exc:
            logger.error("Failed to start inbound server on %s: %s", net.return_listen, exc)
            return None

        writer = None
        try:
            log_listening(logger, listener)
            reader, writer = await accept_stream(listener)
            # one reply per cycle; stop listening as soon as it is accepted
            close_socket_quietly(listener)
            logger.info("Response connection accepted")
            reply = await read_line(reader)
            if reply is None:
                logger.warning("Peer closed the response connection")
                return None
            logger.log(RECV, "Response received via %s: %s", net.return_listen.ip, reply)
            return reply
        except OSError as exc:
            logger.error("Inbound receive failed: %s", exc)
            return None
        finally:
            await close_quietly(writer)
            close_socket_quietly(listener)
