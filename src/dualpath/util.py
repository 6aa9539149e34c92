import asyncio
import socket
from asyncio import StreamWriter


def get_local_addr(writer: StreamWriter) -> tuple[str, int] | None:
    socket_info = writer.get_extra_info("socket")
    if socket_info is not None:
        info = socket_info.getsockname()   # (ip_address_str, port_int)
        return (str(info[0]), int(info[1])) if isinstance(info, tuple) and len(info) == 2 else None
    info = writer.get_extra_info("sockname")
    if info is not None and isinstance(info, (list, tuple)) and len(info) == 2:
        return (str(info[0]), int(info[1]))
    return None


def get_remote_addr(writer: StreamWriter) -> tuple[str, int] | None:
    socket_info = writer.get_extra_info("socket")
    if socket_info is not None:
        info = socket_info.getpeername()
        return (str(info[0]), int(info[1])) if isinstance(info, tuple) else None

    info = writer.get_extra_info("peername")
    if info is not None and isinstance(info, (list, tuple)) and len(info) == 2:
        return (str(info[0]), int(info[1]))
    return None


async def close_quietly(writer: StreamWriter | None) -> None:
    if writer is None:
        return
    try:
        writer.close()
        await writer.wait_closed()
    except OSError:
        pass


def close_socket_quietly(sock: socket.socket | None) -> None:
    if sock is None:
        return
    try:
        sock.close()
    except OSError:
        pass


def open_listener(host: str, port: int, backlog: int) -> socket.socket:
    """
    Bind a non-blocking IPv4 stream listener. SO_REUSEADDR lets a one-shot
    listener rebind the same port right after the previous one is closed.
    """
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind((host, port))
        listener.listen(backlog)
        listener.setblocking(False)
    except BaseException:
        listener.close()
        raise
    return listener


async def accept_stream(listener: socket.socket) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Accept a single connection and wrap it in asyncio streams."""
    loop = asyncio.get_running_loop()
    conn, _address = await loop.sock_accept(listener)
    try:
        return await asyncio.open_connection(sock=conn)
    except BaseException:
        conn.close()
        raise
