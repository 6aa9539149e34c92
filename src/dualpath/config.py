from typing import NamedTuple
from ._types import Endpoint, same_subnet

MAX_PENDING = 5
RETRY_DELAY = 1.0
CYCLE_INTERVAL = 1.0
INTERRUPTED_EXIT_CODE = 130


class NetConfig(NamedTuple):
    # forward path: ABOS2 (192.168.100.2) -> ABOS1 (192.168.100.1:8000)
    forward_listen: Endpoint = Endpoint("192.168.100.1", 8000)
    forward_dial: Endpoint = Endpoint("192.168.100.1", 8000)
    forward_src: str = "192.168.100.2"
    # return path: ABOS1 (192.168.200.1) -> ABOS2 (192.168.200.2:8000)
    return_listen: Endpoint = Endpoint("192.168.200.2", 8000)
    return_dial: Endpoint = Endpoint("192.168.200.2", 8000)
    return_src: str = "192.168.200.1"

    def paths_separated(self) -> bool:
        return not same_subnet(self.forward_listen.ip, self.return_listen.ip)


class TimingConfig(NamedTuple):
    retry_delay: float = RETRY_DELAY
    cycle_interval: float = CYCLE_INTERVAL
    listen_backlog: int = MAX_PENDING
    accept_timeout: float | None = None


class Identity(NamedTuple):
    host_name: str
    language_tag: str = "Python"


class MulticastConfig(NamedTuple):
    group: str = "239.64.0.3"
    port: int = 52000
    interface_ip: str = "192.168.100.1"


RESPONDER_IDENTITY = Identity("ABOS1")
INITIATOR_IDENTITY = Identity("ABOS2")


class Config:

    def __init__(
            self,
            identity,
            net=None,
            timing=None,
            multicast=None,
            log_level="info",
            use_colors=None
    ):
        self.identity: Identity = identity
        self.net: NetConfig = net or NetConfig()
        self.timing: TimingConfig = timing or TimingConfig()
        self.multicast: MulticastConfig = multicast or MulticastConfig()
        self.log_level = log_level
        self.use_colors = use_colors
