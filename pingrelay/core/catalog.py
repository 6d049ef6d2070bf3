"""Built-in probe targets."""

from dataclasses import dataclass
from typing import Optional, Tuple

# Cycles per probe when nothing else is configured
DEFAULT_PING_COUNT = 100


@dataclass(frozen=True)
class Server:
    id: str
    name: str
    address: str


DEFAULT_SERVERS: Tuple[Server, ...] = (
    Server("us-e", "US-East", "pingtest-atl.brawlhalla.com"),
    Server("us-w", "US-West", "pingtest-cal.brawlhalla.com"),
    Server("eu", "Europe", "pingtest-ams.brawlhalla.com"),
    Server("sea", "Southeast Asia", "pingtest-sgp.brawlhalla.com"),
    Server("aus", "Australia", "pingtest-aus.brawlhalla.com"),
    Server("brz", "Brazil", "pingtest-brs.brawlhalla.com"),
    Server("jpn", "Japan", "pingtest-jpn.brawlhalla.com"),
    Server("mde", "Middle East", "pingtest-mde.brawlhalla.com"),
    Server("saf", "Southern Africa", "pingtest-saf.brawlhalla.com"),
)


def find_server(server_id: str) -> Optional[Server]:
    for server in DEFAULT_SERVERS:
        if server.id == server_id:
            return server
    return None
