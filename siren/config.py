"""Per-request settings for the proxy worker."""

from __future__ import annotations

import dataclasses
import uuid as uuid_lib

DEFAULT_PROXY_PORT = 443


@dataclasses.dataclass(frozen=True)
class Config:
    """Identity, host and fallback upstream used while serving one request.

    When no fallback proxy address is given, the request host is used.
    """

    uuid: uuid_lib.UUID
    host: str
    main_page_url: str
    sub_page_url: str
    proxy_addr: str = ""
    proxy_port: int = DEFAULT_PROXY_PORT

    def __post_init__(self) -> None:
        if not self.proxy_addr:
            object.__setattr__(self, "proxy_addr", self.host)
        _check_port(self.proxy_port)

    def with_proxy(self, addr: str, port: int) -> Config:
        """Return a copy whose fallback upstream is ``addr:port``."""
        _check_port(port)
        return dataclasses.replace(self, proxy_addr=addr, proxy_port=port)


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")