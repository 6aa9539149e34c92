import asyncio
import logging
import pytest

from conftest import LOOPBACK, LineCollector, linux_only
from dualpath._types import Endpoint
from dualpath.dialer import Dialer
from dualpath.util import close_quietly, get_local_addr


def _warnings(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "dualpath.dialer" and r.levelno == logging.WARNING]


class TestDial:
    """Tests for Dialer.dial"""

    @pytest.mark.asyncio
    async def test_connects_first_try(self, free_port):
        endpoint = Endpoint(LOOPBACK, free_port())
        collector = await LineCollector().start(endpoint)
        try:
            dialer = Dialer(retry_delay=0.05)
            _reader, writer = await dialer.dial(endpoint, LOOPBACK)
            local_ip, local_port = get_local_addr(writer)
            assert local_ip == LOOPBACK
            assert local_port != 0
            assert dialer.last_attempts == 1
            await close_quietly(writer)
        finally:
            await collector.stop()

    @linux_only
    @pytest.mark.asyncio
    async def test_binds_requested_source(self, free_port):
        endpoint = Endpoint(LOOPBACK, free_port())
        collector = await LineCollector().start(endpoint)
        try:
            _reader, writer = await Dialer(retry_delay=0.05).dial(endpoint, "127.0.0.2")
            assert get_local_addr(writer)[0] == "127.0.0.2"
            writer.write(b"ping\n")
            await writer.drain()
            await asyncio.wait_for(collector.received.wait(), 2)
            await close_quietly(writer)
        finally:
            await collector.stop()

    @pytest.mark.asyncio
    async def test_retries_until_peer_is_up(self, free_port, caplog):
        endpoint = Endpoint(LOOPBACK, free_port())
        collector = LineCollector()
        dialer = Dialer(retry_delay=0.1)

        loop = asyncio.get_running_loop()
        peer_up_at = []

        async def late_start():
            await asyncio.sleep(0.35)
            await collector.start(endpoint)
            peer_up_at.append(loop.time())

        starter = asyncio.create_task(late_start())
        try:
            _reader, writer = await asyncio.wait_for(dialer.dial(endpoint, LOOPBACK), 5)
            connected_at = loop.time()
            await close_quietly(writer)
        finally:
            await starter
            await collector.stop()

        # connected no later than one retry delay after the peer came up, with slack
        assert connected_at - peer_up_at[0] < 2 * dialer.retry_delay
        assert dialer.last_attempts >= 3
        assert len(_warnings(caplog)) == dialer.last_attempts - 1
        assert "retrying" in _warnings(caplog)[0].getMessage()

    @pytest.mark.asyncio
    async def test_unbindable_source_is_retried(self, free_port, caplog):
        endpoint = Endpoint(LOOPBACK, free_port())
        # TEST-NET-3 is never assigned to a local interface
        task = asyncio.create_task(Dialer(retry_delay=0.05).dial(endpoint, "203.0.113.7"))
        await asyncio.sleep(0.3)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(_warnings(caplog)) >= 2

    @pytest.mark.asyncio
    async def test_cancel_during_retry_sleep(self, free_port):
        endpoint = Endpoint(LOOPBACK, free_port())
        task = asyncio.create_task(Dialer(retry_delay=30).dial(endpoint, LOOPBACK))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
