"""
Console entry points. None of the programs needs arguments: every option
has the lab default and can be overridden on the command line or through
a DUALPATH_* environment variable (e.g. DUALPATH_FORWARD_DIAL).
"""
import ipaddress
import logging
import sys
import click
from ._types import Endpoint, parse_endpoint
from .config import (
    CYCLE_INTERVAL,
    INITIATOR_IDENTITY,
    INTERRUPTED_EXIT_CODE,
    MAX_PENDING,
    RESPONDER_IDENTITY,
    RETRY_DELAY,
    Config,
    Identity,
    MulticastConfig,
    NetConfig,
    TimingConfig,
)
from .initiator import Initiator
from .log import LOG_LEVELS, configure_logging, print_banner
from .multicast import ElsgwReceiver
from .responder import Responder

CONTEXT_SETTINGS = {"auto_envvar_prefix": "DUALPATH", "help_option_names": ["-h", "--help"]}
DEFAULT_NET = NetConfig()
DEFAULT_MULTICAST = MulticastConfig()

logger = logging.getLogger(__name__)


class EndpointParamType(click.ParamType):
    name = "ip:port"

    def convert(self, value, param, ctx):
        if isinstance(value, Endpoint):
            return value
        try:
            return parse_endpoint(value)
        except ValueError as exc:
            self.fail(f"{value!r} is not a valid IPv4 endpoint: {exc}", param, ctx)


class IPv4ParamType(click.ParamType):
    name = "ipv4"

    def convert(self, value, param, ctx):
        try:
            return str(ipaddress.IPv4Address(value))
        except ValueError:
            self.fail(f"{value!r} is not an IPv4 address", param, ctx)


ENDPOINT = EndpointParamType()
IPV4 = IPv4ParamType()


def network_options(func):
    options = [
        click.option("--forward-listen", type=ENDPOINT, default=str(DEFAULT_NET.forward_listen), show_default=True,
                     help="Responder listen address on the forward path."),
        click.option("--forward-dial", type=ENDPOINT, default=str(DEFAULT_NET.forward_dial), show_default=True,
                     help="Initiator dial target on the forward path."),
        click.option("--forward-src", type=IPV4, default=DEFAULT_NET.forward_src, show_default=True,
                     help="Source address bound by the Initiator for forward connections."),
        click.option("--return-listen", type=ENDPOINT, default=str(DEFAULT_NET.return_listen), show_default=True,
                     help="Initiator listen address on the return path."),
        click.option("--return-dial", type=ENDPOINT, default=str(DEFAULT_NET.return_dial), show_default=True,
                     help="Responder dial target on the return path."),
        click.option("--return-src", type=IPV4, default=DEFAULT_NET.return_src, show_default=True,
                     help="Source address bound by the Responder for return connections."),
        click.option("--retry-delay", type=float, default=RETRY_DELAY, show_default=True,
                     help="Seconds to wait between connection attempts."),
        click.option("--backlog", type=click.IntRange(min=1), default=MAX_PENDING, show_default=True,
                     help="Listen backlog."),
        click.option("--language", default="Python", show_default=True,
                     help="Language tag carried in the payload."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def logging_options(func):
    func = click.option("--use-colors/--no-use-colors", default=None,
                        help="Colour the severity tags. Defaults to on when stdout is a TTY.")(func)
    func = click.option("--log-level", type=click.Choice(list(LOG_LEVELS.keys())), default="info",
                        show_default=True)(func)
    return func


def build_net(forward_listen, forward_dial, forward_src, return_listen, return_dial, return_src) -> NetConfig:
    return NetConfig(
        forward_listen=forward_listen,
        forward_dial=forward_dial,
        forward_src=forward_src,
        return_listen=return_listen,
        return_dial=return_dial,
        return_src=return_src,
    )


def _exit_interrupted() -> None:
    logger.error("Interrupted")
    sys.exit(INTERRUPTED_EXIT_CODE)


@click.command(context_settings=CONTEXT_SETTINGS)
@network_options
@click.option("--host-name", default=INITIATOR_IDENTITY.host_name, show_default=True)
@click.option("--cycle-interval", type=float, default=CYCLE_INTERVAL, show_default=True,
              help="Seconds to sleep between cycles.")
@click.option("--cycles", type=click.IntRange(min=1), default=None,
              help="Stop after this many cycles instead of running forever.")
@logging_options
def initiator(forward_listen, forward_dial, forward_src, return_listen, return_dial, return_src,
              retry_delay, backlog, language, host_name, cycle_interval, cycles, log_level, use_colors):
    """Send a greeting over the forward path and wait for the reply on the return path."""
    config = Config(
        identity=Identity(host_name, language),
        net=build_net(forward_listen, forward_dial, forward_src, return_listen, return_dial, return_src),
        timing=TimingConfig(retry_delay=retry_delay, cycle_interval=cycle_interval, listen_backlog=backlog),
        log_level=log_level,
        use_colors=use_colors,
    )
    configure_logging(config.log_level, config.use_colors)
    print_banner(f"Client/Server ({host_name}, {language}) Starting")
    try:
        code = Initiator(config).run(cycles)
    except KeyboardInterrupt:
        _exit_interrupted()
    sys.exit(code)


@click.command(context_settings=CONTEXT_SETTINGS)
@network_options
@click.option("--host-name", default=RESPONDER_IDENTITY.host_name, show_default=True)
@click.option("--accept-timeout", type=float, default=None,
              help="Log and keep waiting when no client arrives within this many seconds.")
@logging_options
def responder(forward_listen, forward_dial, forward_src, return_listen, return_dial, return_src,
              retry_delay, backlog, language, host_name, accept_timeout, log_level, use_colors):
    """Answer each forward-path greeting over the return path."""
    config = Config(
        identity=Identity(host_name, language),
        net=build_net(forward_listen, forward_dial, forward_src, return_listen, return_dial, return_src),
        timing=TimingConfig(retry_delay=retry_delay, listen_backlog=backlog, accept_timeout=accept_timeout),
        log_level=log_level,
        use_colors=use_colors,
    )
    configure_logging(config.log_level, config.use_colors)
    print_banner(f"Bridge Server/Client ({host_name}, {language}) Starting")
    try:
        code = Responder(config).run()
    except KeyboardInterrupt:
        _exit_interrupted()
    sys.exit(code)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--group", type=IPV4, default=DEFAULT_MULTICAST.group, show_default=True)
@click.option("--port", type=click.IntRange(1, 65535), default=DEFAULT_MULTICAST.port, show_default=True)
@click.option("--interface-ip", type=IPV4, default=DEFAULT_MULTICAST.interface_ip, show_default=True)
@logging_options
def elsgw(group, port, interface_ip, log_level, use_colors):
    """Dump ELSGW multicast packets received on ABOS1."""
    multicast = MulticastConfig(group, port, interface_ip)
    configure_logging(log_level, use_colors)
    print_banner(f"ELSGW Receiver (Multicast UDP Mode) - {group}:{port} on {interface_ip}")
    try:
        code = ElsgwReceiver(multicast).run()
    except KeyboardInterrupt:
        _exit_interrupted()
    sys.exit(code)
