"""DNS over HTTPS forwarding."""

from __future__ import annotations

import aiohttp

DOH_URL = "https://1.1.1.1/dns-query"
DNS_MESSAGE_TYPE = "application/dns-message"
_HEADERS = {"Content-Type": DNS_MESSAGE_TYPE, "Accept": DNS_MESSAGE_TYPE}


async def doh(req_wireformat: bytes, session: aiohttp.ClientSession | None = None) -> bytes:
    """Send a wire-format DNS query to the resolver and return the raw answer."""
    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await _query(own_session, req_wireformat)
    return await _query(session, req_wireformat)


async def _query(session, req_wireformat: bytes) -> bytes:
    async with session.post(DOH_URL, headers=dict(_HEADERS), data=bytes(req_wireformat)) as response:
        return await response.read()