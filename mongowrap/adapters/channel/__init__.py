"""Channel to the host that runs the MongoDB server.

Architecture:
- protocol.py: request/response messages and the closed method set
- handlers.py: executes requests on the execution host
- local.py: in-process channel for the local host
- client.py: socket channel to a remote agent
- agent.py: agent server run on the remote host
"""

from mongowrap.adapters.channel.client import SocketChannel
from mongowrap.adapters.channel.local import LocalChannel

__all__ = ["LocalChannel", "SocketChannel"]
