"""
Serialization boundary between HTTP responses and stored payloads.

The store only sees bytes; a MessageCodec turns responses into bytes and
back. HttpResponseCodec writes httpx responses in HTTP/1.1 message format:

    HTTP/1.1 200 OK\\r\\n
    Content-Type: application/json\\r\\n
    Content-Length: 12\\r\\n
    \\r\\n
    {"ok": true}
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from respcache.exceptions import CodecError

HEADER_TERMINATOR = b"\r\n\r\n"
LINE_SEPARATOR = b"\r\n"
HEADER_ENCODING = "iso-8859-1"

# The stored body is already decoded, so these no longer describe it
_DROPPED_HEADERS = frozenset({b"content-encoding", b"transfer-encoding", b"content-length"})


@runtime_checkable
class MessageCodec(Protocol):
    """Converts responses to and from stored payloads."""

    async def serialize(self, response: Any) -> bytes:
        """Serialize a response into bytes."""
        ...

    async def deserialize(self, data: bytes) -> Any:
        """Rebuild a response from bytes."""
        ...


class HttpResponseCodec:
    """Codec for httpx.Response objects using the HTTP/1.1 message format."""

    async def serialize(self, response: httpx.Response) -> bytes:
        """Serialize a response, reading its body first if needed.

        Args:
            response: The response to store.

        Returns:
            Status line, headers and decoded body as bytes.

        Raises:
            CodecError: If the input is not a response or its body can't be read.
        """
        if not isinstance(response, httpx.Response):
            raise CodecError(
                "Cannot serialize object that is not an httpx.Response",
                context={"direction": "serialize", "type": type(response).__name__},
            )

        try:
            body = await self._read_body(response)
        except (httpx.HTTPError, RuntimeError) as e:
            raise CodecError(
                f"Failed to read response body: {e}",
                context={"direction": "serialize", "status_code": response.status_code},
            ) from e

        reason = response.reason_phrase or httpx.codes.get_reason_phrase(
            response.status_code
        )
        status_line = f"{response.http_version} {response.status_code} {reason}".rstrip()
        lines = [status_line.encode(HEADER_ENCODING)]
        for name, value in response.headers.raw:
            if name.lower() in _DROPPED_HEADERS:
                continue
            lines.append(name + b": " + value)
        lines.append(b"Content-Length: " + str(len(body)).encode("ascii"))

        return LINE_SEPARATOR.join(lines) + HEADER_TERMINATOR + body

    async def deserialize(self, data: bytes) -> httpx.Response:
        """Rebuild a response from a stored payload.

        Args:
            data: Bytes previously produced by serialize().

        Returns:
            An httpx.Response with its body already loaded.

        Raises:
            CodecError: If the payload is malformed or truncated.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise CodecError(
                "Payload must be bytes",
                context={"direction": "deserialize", "type": type(data).__name__},
            )

        raw = bytes(data)
        head, sep, body = raw.partition(HEADER_TERMINATOR)
        if not sep:
            raise self._corrupt("missing header terminator", raw)

        lines = head.split(LINE_SEPARATOR)
        http_version, status_code, reason = self._parse_status_line(lines[0], raw)

        headers: list[tuple[bytes, bytes]] = []
        for line in lines[1:]:
            name, colon, value = line.partition(b":")
            if not colon or not name.strip():
                raise self._corrupt(f"malformed header line {line!r}", raw)
            headers.append((name.strip(), value.strip()))

        for name, value in headers:
            if name.lower() != b"content-length":
                continue
            if not value.isdigit() or int(value) != len(body):
                raise self._corrupt(
                    f"body length {len(body)} does not match Content-Length {value!r}",
                    raw,
                )

        try:
            return httpx.Response(
                status_code,
                headers=headers,
                content=body,
                extensions={"http_version": http_version, "reason_phrase": reason},
            )
        except httpx.HTTPError as e:
            raise CodecError(
                f"Stored response could not be rebuilt: {e}",
                context={"direction": "deserialize", "size": len(raw)},
            ) from e

    @staticmethod
    async def _read_body(response: httpx.Response) -> bytes:
        try:
            return response.content
        except httpx.ResponseNotRead:
            pass

        # Sync streams (httpx.Client, plain iterators) fail under aread()
        if isinstance(response.stream, httpx.SyncByteStream):
            return response.read()
        return await response.aread()

    def _parse_status_line(self, line: bytes, raw: bytes) -> tuple[bytes, int, bytes]:
        parts = line.split(b" ", 2)
        if len(parts) < 2 or not parts[0].startswith(b"HTTP/"):
            raise self._corrupt(f"bad status line {line!r}", raw)

        version, code = parts[0], parts[1]
        if not code.isdigit() or len(code) != 3:
            raise self._corrupt(f"bad status code {code!r}", raw)

        reason = parts[2] if len(parts) == 3 else b""
        return version, int(code), reason

    @staticmethod
    def _corrupt(detail: str, raw: bytes) -> CodecError:
        return CodecError(
            f"Corrupt cached response: {detail}",
            context={"direction": "deserialize", "size": len(raw)},
        )
