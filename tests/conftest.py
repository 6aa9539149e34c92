"""
Shared fixtures for the dualpath tests.

Every network test runs over loopback: both "subnets" collapse onto
127.0.0.1, and the ports are picked fresh per test.
"""
import asyncio
import logging
import socket
import sys
import pytest

from dualpath._types import Endpoint
from dualpath.config import Config, Identity, NetConfig, TimingConfig

LOOPBACK = "127.0.0.1"

linux_only = pytest.mark.skipif(
    not sys.platform.startswith("linux"),
    reason="binding 127.0.0.2 as a source needs the whole 127/8 on lo",
)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((LOOPBACK, 0))
        return s.getsockname()[1]


@pytest.fixture
def free_port():
    return _free_port


@pytest.fixture
def loopback_net(free_port) -> NetConfig:
    forward = Endpoint(LOOPBACK, free_port())
    back = Endpoint(LOOPBACK, free_port())
    return NetConfig(
        forward_listen=forward,
        forward_dial=forward,
        forward_src=LOOPBACK,
        return_listen=back,
        return_dial=back,
        return_src=LOOPBACK,
    )


@pytest.fixture
def fast_timing() -> TimingConfig:
    return TimingConfig(retry_delay=0.05, cycle_interval=0.01)


@pytest.fixture
def responder_config(loopback_net, fast_timing) -> Config:
    return Config(identity=Identity("ABOS1", "Java"), net=loopback_net, timing=fast_timing)


@pytest.fixture
def initiator_config(loopback_net, fast_timing) -> Config:
    return Config(identity=Identity("ABOS2", "Java"), net=loopback_net, timing=fast_timing)


@pytest.fixture(autouse=True)
def reset_dualpath_logger(caplog):
    caplog.set_level(logging.DEBUG, logger="dualpath")
    yield
    logger = logging.getLogger("dualpath")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class LineCollector:
    """A plain line server standing in for the other host."""

    def __init__(self, reply: bytes | None = None):
        self.lines: list[bytes] = []
        self.reply = reply
        self.received = asyncio.Event()
        self.server: asyncio.AbstractServer | None = None

    async def handle(self, reader, writer):
        line = await reader.readline()
        self.lines.append(line)
        self.received.set()
        writer.close()

    async def start(self, endpoint: Endpoint) -> "LineCollector":
        self.server = await asyncio.start_server(self.handle, endpoint.ip, endpoint.port)
        return self

    async def stop(self) -> None:
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()


async def send_raw(endpoint: Endpoint, payload: bytes) -> None:
    _reader, writer = await asyncio.open_connection(endpoint.ip, endpoint.port)
    writer.write(payload)
    await writer.drain()
    writer.close()
    await writer.wait_closed()


async def connect_when_listening(endpoint: Endpoint, attempts: int = 100):
    for _ in range(attempts):
        try:
            return await asyncio.open_connection(endpoint.ip, endpoint.port)
        except OSError:
            await asyncio.sleep(0.02)
    raise AssertionError(f"nothing listening on {endpoint}")
