from .config import Identity

RECEIVED_MARKER = " --- Received: "


def compose_greeting(identity: Identity) -> str:
    return f"Hello from {identity.host_name} written by {identity.language_tag}"


def compose_reply(identity: Identity, via: str, received: str) -> str:
    """The received payload is echoed verbatim after the marker."""
    return (
        f"Response from {identity.host_name} written by {identity.language_tag} "
        f"via {via}{RECEIVED_MARKER}{received}"
    )


def echoed_payload(reply: str) -> str | None:
    _, sep, payload = reply.partition(RECEIVED_MARKER)
    return payload if sep else None
