"""Stream, address, key derivation and VMess/Shadowsocks handlers for a WebSocket proxy tunnel."""

__version__ = "0.1.0"

__all__ = [
    "addr",
    "config",
    "dns",
    "hashing",
    "shadowsocks",
    "stream",
    "vmess",
]