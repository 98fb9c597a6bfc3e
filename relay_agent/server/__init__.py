"""HTTP front end."""

from relay_agent.server.http_server import RelayHttpServer

__all__ = ["RelayHttpServer"]
