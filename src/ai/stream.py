"""
Streaming transport for FIM requests.

Each request is owned by a StreamHandle: iterate chunks() to receive decoded
token text, call destroy() to stop it. Destroying a handle stops further
chunks from being delivered and cancels the task that is reading it.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

import httpx

from ai.errors import DecodeError, TransportError
from ai.providers.base import FimProvider
from ai.providers.registry import FimRequest

logger = logging.getLogger(__name__)

# Reads never time out: a stalled stream stays open until it is destroyed
DEFAULT_TIMEOUT = httpx.Timeout(None, connect=10.0)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


def parse_stream_line(line: str) -> dict | None:
    """Decode one line of a streamed response body.

    Handles both newline-delimited JSON (Ollama) and server-sent events
    (llama.cpp, LM Studio).

    Returns:
        The decoded JSON object, or None for lines that carry no payload
        (blank lines, SSE comments and fields, the [DONE] sentinel).

    Raises:
        DecodeError: The payload is not a JSON object.
    """
    line = line.strip()
    if not line or line.startswith(":"):
        return None

    if line.startswith(SSE_DATA_PREFIX):
        line = line[len(SSE_DATA_PREFIX) :].strip()
    elif line.startswith(("event:", "id:", "retry:")):
        return None

    if not line or line == SSE_DONE:
        return None

    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON chunk: {line[:80]!r}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _parse_error(response: httpx.Response) -> str:
    """Parse an error message from a non-200 response."""
    try:
        data = response.json()
        if isinstance(data, dict) and "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                error = error.get("message", error)
            return f"HTTP {response.status_code}: {error}"
    except (json.JSONDecodeError, ValueError):
        pass
    return f"HTTP {response.status_code}"


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class StreamHandle:
    """Cancellation handle for a single streaming FIM request."""

    def __init__(
        self,
        request: FimRequest,
        provider: FimProvider,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        self.request = request
        self._provider = provider
        self._timeout = timeout
        self._destroyed = False
        self._reader: asyncio.Task | None = None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Stop the stream. Safe to call more than once."""
        if self._destroyed:
            return
        self._destroyed = True

        reader = self._reader
        if reader is not None and not reader.done() and reader is not _current_task():
            reader.cancel()

    async def chunks(self) -> AsyncIterator[str]:
        """Yield token text fragments until the server closes the stream.

        Chunks that fail to decode are skipped.

        Raises:
            TransportError: Connection failure, a non-200 response, or an error
                reported by the server mid-stream.
        """
        if self._destroyed:
            return

        self._reader = _current_task()
        request = self.request
        try:
            async with (
                httpx.AsyncClient(timeout=self._timeout) as client,
                client.stream(
                    request.method, request.url, headers=request.headers, json=request.body
                ) as response,
            ):
                if response.status_code != 200:
                    await response.aread()
                    raise TransportError(_parse_error(response))

                async for line in response.aiter_lines():
                    if self._destroyed:
                        break
                    try:
                        data = parse_stream_line(line)
                        if data is None:
                            continue
                        text = self._provider.decode_chunk(data)
                    except DecodeError:
                        logger.debug("Skipping undecodable chunk from %s", request.url, exc_info=True)
                        continue
                    if text is not None:
                        yield text
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to {request.url}. Is the server running?") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {request.url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {request.url} failed: {e}") from e
        finally:
            self._reader = None


class FimStreamClient:
    """Opens streaming FIM requests against an inference server."""

    def __init__(self, timeout: httpx.Timeout = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def open_stream(self, request: FimRequest, provider: FimProvider) -> StreamHandle:
        """Create a handle for the request. Nothing is sent until chunks() is iterated."""
        return StreamHandle(request, provider, self.timeout)
