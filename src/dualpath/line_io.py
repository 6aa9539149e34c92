"""
Single-line framing used on both paths: one UTF-8 line terminated by "\n",
no length prefix and no header. There is no read timeout; a peer that never
sends the terminator stalls the reader until it closes the connection.
"""
import asyncio

ENCODING = "utf-8"
TERMINATOR = b"\n"


class LineReadError(OSError):
    """Raised when a received line cannot be turned into text."""


async def write_line(writer: asyncio.StreamWriter, text: str) -> None:
    if "\n" in text:
        raise ValueError("line payload must not contain a newline")
    writer.write(text.encode(ENCODING) + TERMINATOR)
    await writer.drain()


async def read_line(reader: asyncio.StreamReader) -> str | None:
    """
    Return the next line without its terminator, or None when the peer
    closed before sending a single byte.
    """
    try:
        data = await reader.readline()
    except ValueError as exc:
        # readline() raises ValueError once the buffer limit is exceeded
        raise LineReadError(f"line too long: {exc}") from exc
    if not data:
        return None
    if data.endswith(TERMINATOR):
        data = data[:-1]
        if data.endswith(b"\r"):
            data = data[:-1]
    try:
        return data.decode(ENCODING)
    except UnicodeDecodeError as exc:
        raise LineReadError(f"malformed {ENCODING} in received line: {exc}") from exc
