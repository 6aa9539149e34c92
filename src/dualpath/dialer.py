import asyncio
import logging
from ._types import Endpoint
from .util import close_quietly, get_local_addr

logger = logging.getLogger(__name__)


class Dialer:
    """
    Connects to a destination from a pinned source address, retrying forever.

    The local port is always 0 so the OS picks an ephemeral one; only the
    source IP is fixed, which is what forces the outbound interface.
    """

    def __init__(self, retry_delay: float):
        self.retry_delay = retry_delay
        self.last_attempts = 0

    async def dial(self, dst: Endpoint, src_ip: str) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        attempt = 0
        while True:
            attempt += 1
            logger.info("Attempting connection to %s from %s (attempt %d)", dst, src_ip, attempt)
            writer = None
            try:
                reader, writer = await asyncio.open_connection(
                    dst.ip, dst.port, local_addr=(src_ip, 0)
                )
                local = get_local_addr(writer)
                if local is None or local[0] != src_ip:
                    raise OSError(f"connection bound to {local}, expected source {src_ip}")
            except (OSError, ValueError) as exc:
                # ValueError covers malformed host names rejected during resolution
                logger.warning("Connection to %s failed: %s (retrying...)", dst, exc)
                await close_quietly(writer)
                await asyncio.sleep(self.retry_delay)
                continue

            self.last_attempts = attempt
            logger.info("Connection established %s:%d -> %s", local[0], local[1], dst)
            return reader, writer
