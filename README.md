# siren

`siren` is an asyncio library with the pieces of a WebSocket proxy tunnel:
a buffered byte stream over the messages of a WebSocket, request handlers for
VMess (AEAD header) and plain Shadowsocks clients, the VMess key derivation
function, and relaying of a session to TCP upstreams with a fallback target.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `siren.config`

`Config` is a frozen dataclass with the settings for one request: `uuid`,
`host`, `main_page_url`, `sub_page_url`, and the fallback upstream
`proxy_addr` and `proxy_port`. When `proxy_addr` is empty, `host` is used, and
`proxy_port` defaults to 443. A port outside 0–65535 raises `ValueError`.

`Config.with_proxy(addr, port)` returns a copy with a different fallback
upstream.

```python
import uuid

from siren.config import Config

config = Config(
    uuid=uuid.UUID("96850032-1b92-46e9-a4f2-b99631456894"),
    host="proxy.example.com",
    main_page_url="https://example.com/index.html",
    sub_page_url="https://example.com/sub.html",
)
print(config.proxy_addr, config.proxy_port)   # proxy.example.com 443
fallback = config.with_proxy("203.0.113.7", 8443)
```

### `siren.hashing`

`kdf(key, path)` is the VMess AEAD key derivation: a chain of HMAC-SHA256
levels that starts from the key `"VMess AEAD KDF"`, with one more level keyed
by each element of `path`, applied to `key`. It returns 32 bytes. Elements of
`path` longer than 64 bytes raise `ValueError`. The module also holds the salt
constants used by the VMess header (`VMESS_HEADER_PAYLOAD_AEAD_KEY`,
`AEAD_RESP_HEADER_KEY` and the others).

### `siren.addr`

`parse_addr(reader)` reads a type-prefixed address and returns it as text:
type 1 is IPv4 (4 bytes), types 2 and 3 are a length byte followed by a domain
name, type 4 is IPv6 (16 bytes). Any other type raises `AddressError`, a
`ValueError`.

`BytesReader` is an awaitable reader over a byte string, with `read_exact(n)`,
`read_u8()`, `read_u16()` (big-endian) and a `remaining` property. Reading past
the end raises `EOFError`.

```python
import asyncio

from siren.addr import BytesReader, parse_addr

reader = BytesReader(b"\x03\x0bexample.com")
print(asyncio.run(parse_addr(reader)))   # example.com
```

### `siren.dns`

`doh(req_wireformat, session=None)` posts a wire-format DNS message to
`https://1.1.1.1/dns-query` as `application/dns-message` and returns the raw
response body. Without a session, one `aiohttp.ClientSession` is opened for the
call.

### `siren.stream`

`ProxyStream(config, ws, events, *, connector=None, resolver=None, session=None)`
reads and writes bytes over one WebSocket:

- `ws` is anything with an awaitable `send_bytes(data)`.
- `events` is an async iterable of incoming messages; `bytes` payloads are
  buffered, text messages are skipped, and the end of the iteration means the
  socket closed. Errors raised by it come out as `OSError`.
- `connector(addr, port)` opens a TCP connection and returns a
  `(StreamReader, StreamWriter)` pair; it defaults to `asyncio.open_connection`.
- `resolver(data)` answers a DNS query; it defaults to `siren.dns.doh` with the
  given `session`.

Methods:

- `fill_buffer_until(n)` buffers messages until `n` bytes are held or the
  socket closes; `peek_buffer(n)` returns up to `n` buffered bytes without
  consuming them.
- `read(n)` returns up to `n` bytes, and `b""` once the socket is closed. A
  single message larger than 512 KiB raises `OSError`.
- `read_exact(n)`, `read_u8()`, `read_u16()` read exact amounts and raise
  `EOFError` when the socket closes first.
- `write(data)` sends `data` as one binary message and returns its length.
- `handle_tcp_outbound(addr, port)` connects to the upstream and relays bytes
  both ways until the upstream closes.
- `connect_pool(remote_addr, remote_port)` relays to the requested target
  first and, if that fails, to the configured fallback. It returns the target
  that carried the session, or `None` if neither did; failures are logged.
- `handle_udp_outbound()` reads one datagram, passes it to the resolver and,
  if the resolver answers, writes the datagram back to the client. Resolver
  failures are logged and nothing is written.

### `siren.shadowsocks`

`process_shadowsocks(stream)` reads an address (as `parse_addr` does) and a
big-endian port from the stream, then calls `connect_pool`. Sessions are always
treated as TCP.

### `siren.vmess`

`aead_decrypt(stream)` reads the sealed request header (16-byte auth ID,
18-byte sealed length, 8-byte nonce, then the sealed header) and returns the
plaintext, using keys derived with `kdf` from the MD5 of the user UUID and the
VMess salt. A header that fails authentication raises `VmessError`.

`process_vmess(stream)` decrypts the header, checks that the version is 1
(otherwise `VmessError`), reads the data IV, key, options, command, port and
address, writes the sealed response length and response header, and then
relays over TCP with `connect_pool` when the command is TCP, or forwards one
datagram with `handle_udp_outbound` otherwise.

## What this package does not do

- It has no HTTP server, routes or command to start one. Accepting the
  WebSocket upgrade and feeding its messages into a `ProxyStream` is left to
  the application that uses the library.
- It does not tell client protocols apart from the first bytes of a stream;
  the caller picks `process_vmess` or `process_shadowsocks`.
- It has no handlers for VLESS or Trojan clients.
- It does not produce share links, fetch proxy lists or choose a fallback
  upstream from a request path; the fallback is whatever the `Config` holds.