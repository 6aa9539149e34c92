"""
Diagnostic receiver for the ELSGW gateway, which publishes its API packets
by UDP multicast to ABOS1. Every datagram is dumped as hex and as
printable ASCII; nothing is parsed.
"""
import asyncio
import logging
import socket
import struct
import sys
from .config import MulticastConfig
from .lifecycle import Lifecycle
from .log import RECV

logger = logging.getLogger(__name__)

BUFFER_SIZE = 1024
HEX_BYTES_PER_LINE = 16
SEPARATOR = "=" * 40


def hex_dump_lines(data: bytes) -> list[str]:
    return [
        " ".join(f"{b:02x}" for b in data[i:i + HEX_BYTES_PER_LINE])
        for i in range(0, len(data), HEX_BYTES_PER_LINE)
    ]


def ascii_preview(data: bytes) -> str:
    return "".join(chr(b) if 32 <= b <= 126 else "." for b in data)


def membership_request(group: str, interface_ip: str) -> bytes:
    return struct.pack("4s4s", socket.inet_aton(group), socket.inet_aton(interface_ip))


def open_multicast_socket(config: MulticastConfig) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("0.0.0.0", config.port))
        logger.info("UDP socket bound to 0.0.0.0:%d", config.port)
        sock.setsockopt(
            socket.IPPROTO_IP,
            socket.IP_ADD_MEMBERSHIP,
            membership_request(config.group, config.interface_ip),
        )
        sock.setblocking(False)
    except BaseException:
        sock.close()
        raise
    return sock


class ElsgwProtocol(asyncio.DatagramProtocol):

    def __init__(self):
        self.packet_count = 0
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        data = data[:BUFFER_SIZE]
        self.packet_count += 1
        logger.log(RECV, "%s [#%d]", SEPARATOR, self.packet_count)
        logger.log(RECV, "From: %s:%d", addr[0], addr[1])
        logger.log(RECV, "Size: %d bytes", len(data))
        for line in hex_dump_lines(data):
            logger.log(RECV, line, extra={"line_tag": "HEX"})
        logger.log(RECV, ascii_preview(data), extra={"line_tag": "ASCII"})
        logger.log(RECV, SEPARATOR)

    def error_received(self, exc):
        logger.error("recvfrom failed: %s", exc)


class ElsgwReceiver:
    def __init__(self, config: MulticastConfig):
        self.config = config
        self.lifecycle = Lifecycle()
        self.protocol: ElsgwProtocol | None = None
        self._sock: socket.socket | None = None

    def run(self) -> int:
        return self.lifecycle.run(self.serve)

    def startup(self) -> None:
        try:
            self._sock = open_multicast_socket(self.config)
        except OSError as exc:
            logger.error("Failed to set up multicast socket: %s", exc)
            sys.exit(1)
        logger.info("Joined multicast group: %s", self.config.group)
        logger.info("Using interface: %s", self.config.interface_ip)
        logger.info("Ready to receive ELSGW API packets")

    async def serve(self) -> None:
        self.startup()
        loop = asyncio.get_running_loop()
        transport, self.protocol = await loop.create_datagram_endpoint(ElsgwProtocol, sock=self._sock)
        try:
            await loop.create_future()
        finally:
            self.shutdown()
            transport.close()

    def shutdown(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_DROP_MEMBERSHIP,
                membership_request(self.config.group, self.config.interface_ip),
            )
        except OSError as exc:
            logger.warning("Failed to leave multicast group: %s", exc)
