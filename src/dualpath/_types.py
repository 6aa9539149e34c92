from typing import NamedTuple, Literal
import ipaddress


Tag = Literal["INFO", "SEND", "RECV", "WARN", "ERROR", "HEX", "ASCII"]


class Endpoint(NamedTuple):
    ip: str
    port: int

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"


def parse_endpoint(value: str, allow_zero_port: bool = False) -> Endpoint:
    """
    Parse an "ip:port" string. Only IPv4 literals are accepted since every
    endpoint is pinned to an interface address, never resolved by name.
    """
    ip, sep, port_text = value.rpartition(":")
    if not sep or not ip:
        raise ValueError(f"expected ip:port, got {value!r}")
    ipaddress.IPv4Address(ip)
    port = int(port_text)
    lowest = 0 if allow_zero_port else 1
    if not lowest <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return Endpoint(ip, port)


def same_subnet(a: str, b: str, prefix: int = 24) -> bool:
    net = ipaddress.IPv4Network(f"{a}/{prefix}", strict=False)
    return ipaddress.IPv4Address(b) in net
