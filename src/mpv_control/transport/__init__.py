"""Channel layer.

Byte pipes between the controller and the player process.
The transaction queue only depends on the Channel protocol.
"""

from .channel import Channel, ChannelState, MockChannel, UnixSocketChannel

__all__ = [
    "Channel",
    "ChannelState",
    "MockChannel",
    "UnixSocketChannel",
]
