"""VMess request handling with AEAD-sealed headers."""

from __future__ import annotations

import hashlib
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .addr import BytesReader, parse_addr
from .hashing import (
    AEAD_RESP_HEADER_IV,
    AEAD_RESP_HEADER_KEY,
    AEAD_RESP_HEADER_LEN_IV,
    AEAD_RESP_HEADER_LEN_KEY,
    VMESS_HEADER_PAYLOAD_AEAD_IV,
    VMESS_HEADER_PAYLOAD_AEAD_KEY,
    VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV,
    VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY,
    kdf,
)
from .stream import ProxyStream

log = logging.getLogger(__name__)

USER_KEY_SALT = b"c48619fe-8f02-49e0-b9e9-edf763e17e21"
VERSION = 1
COMMAND_TCP = 0x01
RESPONSE_HEADER_LENGTH = 4

AUTH_ID_SIZE = 16
SEALED_LENGTH_SIZE = 18
CONNECTION_NONCE_SIZE = 8
TAG_SIZE = 16
KEY_SIZE = 16
NONCE_SIZE = 12


class VmessError(ValueError):
    """A VMess header could not be authenticated or understood."""


def _open(key: bytes, nonce: bytes, data: bytes, aad: bytes) -> bytes:
    try:
        return AESGCM(key).decrypt(nonce, data, aad)
    except InvalidTag as exc:
        raise VmessError("header authentication failed") from exc


async def aead_decrypt(stream: ProxyStream) -> bytes:
    """Read the sealed request header from ``stream`` and return its plaintext."""
    user_key = hashlib.md5(stream.config.uuid.bytes + USER_KEY_SALT).digest()

    auth_id = await stream.read_exact(AUTH_ID_SIZE)
    sealed_length = await stream.read_exact(SEALED_LENGTH_SIZE)
    nonce = await stream.read_exact(CONNECTION_NONCE_SIZE)

    def derive(salt: bytes, size: int) -> bytes:
        return kdf(user_key, [salt, auth_id, nonce])[:size]

    length = _open(
        derive(VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY, KEY_SIZE),
        derive(VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV, NONCE_SIZE),
        sealed_length,
        auth_id,
    )
    header_length = int.from_bytes(length[:2], "big")

    sealed_header = await stream.read_exact(header_length + TAG_SIZE)
    return _open(
        derive(VMESS_HEADER_PAYLOAD_AEAD_KEY, KEY_SIZE),
        derive(VMESS_HEADER_PAYLOAD_AEAD_IV, NONCE_SIZE),
        sealed_header,
        auth_id,
    )


def _seal(key_source: bytes, iv_source: bytes, key_salt: bytes, iv_salt: bytes, data: bytes) -> bytes:
    key = kdf(key_source, [key_salt])[:KEY_SIZE]
    nonce = kdf(iv_source, [iv_salt])[:NONCE_SIZE]
    return AESGCM(key).encrypt(nonce, data, None)


async def process_vmess(stream: ProxyStream) -> None:
    """Read a VMess request from ``stream``, answer it and serve it."""
    reader = BytesReader(await aead_decrypt(stream))

    if await reader.read_u8() != VERSION:
        raise VmessError("invalid version")

    data_iv = await reader.read_exact(16)
    data_key = await reader.read_exact(16)
    options = await reader.read_exact(4)
    is_tcp = await reader.read_u8() == COMMAND_TCP
    remote_port = await reader.read_u16()
    remote_addr = await parse_addr(reader)

    response_key = hashlib.sha256(data_key).digest()[:16]
    response_iv = hashlib.sha256(data_iv).digest()[:16]

    await stream.write(
        _seal(
            response_key,
            response_iv,
            AEAD_RESP_HEADER_LEN_KEY,
            AEAD_RESP_HEADER_LEN_IV,
            RESPONSE_HEADER_LENGTH.to_bytes(2, "big"),
        )
    )
    await stream.write(
        _seal(
            response_key,
            response_iv,
            AEAD_RESP_HEADER_KEY,
            AEAD_RESP_HEADER_IV,
            bytes([options[0], 0, 0, 0]),
        )
    )

    if is_tcp:
        await stream.connect_pool(remote_addr, remote_port)
    else:
        try:
            await stream.handle_udp_outbound()
        except Exception as exc:
            log.error("error handling udp: %s", exc)