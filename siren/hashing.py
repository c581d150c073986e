"""Nested HMAC-SHA256 key derivation used by the VMess AEAD header."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from typing import Protocol

VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY = b"VMess Header AEAD Key_Length"
VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV = b"VMess Header AEAD Nonce_Length"
VMESS_HEADER_PAYLOAD_AEAD_KEY = b"VMess Header AEAD Key"
VMESS_HEADER_PAYLOAD_AEAD_IV = b"VMess Header AEAD Nonce"
AEAD_RESP_HEADER_LEN_KEY = b"AEAD Resp Header Len Key"
AEAD_RESP_HEADER_LEN_IV = b"AEAD Resp Header Len IV"
AEAD_RESP_HEADER_KEY = b"AEAD Resp Header Key"
AEAD_RESP_HEADER_IV = b"AEAD Resp Header IV"

KDF_ROOT_KEY = b"VMess AEAD KDF"
_BLOCK_SIZE = 64


class _Hasher(Protocol):
    def copy(self) -> _Hasher: ...

    def update(self, data: bytes) -> None: ...

    def digest(self) -> bytes: ...


class _Sha256:
    def __init__(self, state=None) -> None:
        self._state = state if state is not None else hashlib.sha256()

    def copy(self) -> _Sha256:
        return _Sha256(self._state.copy())

    def update(self, data: bytes) -> None:
        self._state.update(data)

    def digest(self) -> bytes:
        return self._state.digest()


class _Hmac:
    """HMAC whose underlying hash may itself be another HMAC."""

    def __init__(self, key: bytes, hasher: _Hasher) -> None:
        if len(key) > _BLOCK_SIZE:
            raise ValueError(f"key longer than {_BLOCK_SIZE} bytes")
        padded = key.ljust(_BLOCK_SIZE, b"\0")
        self._inner = hasher.copy()
        self._inner.update(bytes(b ^ 0x36 for b in padded))
        self._outer = hasher
        self._opad = bytes(b ^ 0x5C for b in padded)

    def copy(self) -> _Hmac:
        clone = object.__new__(_Hmac)
        clone._inner = self._inner.copy()
        clone._outer = self._outer.copy()
        clone._opad = self._opad
        return clone

    def update(self, data: bytes) -> None:
        self._inner.update(data)

    def digest(self) -> bytes:
        outer = self._outer.copy()
        outer.update(self._opad)
        outer.update(self._inner.digest())
        return outer.digest()


def kdf(key: bytes, path: Iterable[bytes]) -> bytes:
    """Derive 32 bytes from ``key`` through HMACs keyed by each element of ``path``."""
    current: _Hasher = _Hmac(KDF_ROOT_KEY, _Sha256())
    for element in path:
        current = _Hmac(bytes(element), current)
    current.update(bytes(key))
    return current.digest()