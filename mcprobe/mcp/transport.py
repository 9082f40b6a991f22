"""MCP server communication over stdio, streamable HTTP, and legacy SSE."""

from __future__ import annotations

import json
import logging
import os
import queue
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"


class MCPTransportError(Exception):
    """Raised when MCP transport communication fails."""


class MCPTimeoutError(MCPTransportError):
    """Raised when a request outlives its deadline."""


def iter_sse_events(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """
    Parse a Server-Sent Events line stream into ``(event, data)`` pairs.

    Multi-line ``data:`` fields are joined with newlines. Events without an
    explicit name are reported as ``message``.
    """
    event = ""
    data: List[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data:
                yield event or "message", "\n".join(data)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield event or "message", "\n".join(data)


def _raise_for_error(response: Any) -> Dict[str, Any]:
    """Return the ``result`` of a JSON-RPC response; raise on errors and bad shapes."""
    if not isinstance(response, dict):
        raise MCPTransportError(f"Malformed JSON-RPC response: {str(response)[:200]}")
    if "error" in response:
        err = response["error"]
        if isinstance(err, dict):
            raise MCPTransportError(f"MCP error {err.get('code')}: {err.get('message')}")
        raise MCPTransportError(f"MCP error: {err}")
    result = response.get("result")
    if result is None:
        return {}
    if not isinstance(result, dict):
        raise MCPTransportError(f"Malformed JSON-RPC result: {str(result)[:200]}")
    return result


def _is_response(message: Any) -> bool:
    return isinstance(message, dict) and "id" in message and ("result" in message or "error" in message)


class MCPTransport(ABC):
    """
    Base JSON-RPC transport.

    Every request carries its own ``timeout`` in seconds; the transport never
    keeps an ambient deadline of its own.
    """

    name = "base"

    def __init__(self) -> None:
        self._request_id = 0
        self._lock = threading.Lock()

    def _next_message(self, method: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        with self._lock:
            self._request_id += 1
            message: Dict[str, Any] = {"jsonrpc": "2.0", "id": self._request_id, "method": method}
        if params is not None:
            message["params"] = params
        return message

    @abstractmethod
    def start(self, timeout: float) -> None:
        """Open the underlying connection."""

    @abstractmethod
    def stop(self) -> None:
        """Release the underlying connection."""

    @abstractmethod
    def send(self, method: str, params: Optional[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        """Send a request and return its ``result``."""

    @abstractmethod
    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a notification (no response expected)."""

    def describe(self) -> str:
        return self.name


class _PendingResponses:
    """Routes responses read by a background thread to waiting requests."""

    def __init__(self) -> None:
        self._waiting: Dict[Any, "queue.Queue[Any]"] = {}
        self._lock = threading.Lock()

    def register(self, request_id: Any) -> "queue.Queue[Any]":
        slot: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        with self._lock:
            self._waiting[request_id] = slot
        return slot

    def discard(self, request_id: Any) -> None:
        with self._lock:
            self._waiting.pop(request_id, None)

    def deliver(self, message: Dict[str, Any]) -> None:
        with self._lock:
            slot = self._waiting.pop(message.get("id"), None)
        if slot is None:
            logger.debug("Dropping response for unknown request id %r", message.get("id"))
            return
        slot.put(message)

    def fail_all(self, error: Exception) -> None:
        with self._lock:
            waiting, self._waiting = self._waiting, {}
        for slot in waiting.values():
            slot.put(error)

    @staticmethod
    def wait(slot: "queue.Queue[Any]", method: str, timeout: float) -> Dict[str, Any]:
        try:
            message = slot.get(timeout=timeout)
        except queue.Empty:
            raise MCPTimeoutError(f"request timeout after {timeout:g}s waiting for '{method}'")
        if isinstance(message, Exception):
            raise message
        return _raise_for_error(message)


# ── stdio ────────────────────────────────────────────────────────────────


class StdioTransport(MCPTransport):
    """
    Communicate with a local MCP server over stdin/stdout (JSON-RPC lines).

    A reader thread consumes stdout so a request can wait with a deadline
    instead of blocking on ``readline()``.
    """

    name = "stdio"

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        super().__init__()
        self.command = command
        self.args = args or []
        self.env = env or {}
        self._process: Optional[subprocess.Popen] = None
        self._pending = _PendingResponses()
        self._reader: Optional[threading.Thread] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self, timeout: float = 0) -> None:
        """Spawn the MCP server subprocess."""
        if self.is_running:
            return

        merged_env = {**os.environ, **self.env}
        try:
            self._process = subprocess.Popen(
                [self.command] + self.args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                env=merged_env,
            )
        except FileNotFoundError:
            raise MCPTransportError(
                f"MCP server command not found: {self.command}. "
                "Make sure the server package is installed and on PATH."
            )

        self._reader = threading.Thread(target=self._read_loop, name="mcprobe-stdio-reader", daemon=True)
        self._reader.start()
        logger.debug("Started MCP server: %s %s", self.command, " ".join(self.args))

    def stop(self) -> None:
        """Terminate the MCP server subprocess."""
        if self._process and self._process.poll() is None:
            try:
                self._process.terminate()
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
        self._process = None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def describe(self) -> str:
        return " ".join([self.command] + self.args)

    def _read_loop(self) -> None:
        process = self._process
        assert process is not None and process.stdout is not None
        for raw in iter(process.stdout.readline, b""):
            try:
                message = json.loads(raw.decode())
            except ValueError:
                logger.debug("Ignoring non-JSON line from server: %r", raw[:200])
                continue
            if _is_response(message):
                self._pending.deliver(message)
            else:
                logger.debug("Ignoring server message: %s", message.get("method") if isinstance(message, dict) else message)
        self._pending.fail_all(MCPTransportError("MCP server closed connection (empty response)"))

    # ── JSON-RPC ──────────────────────────────────────────────────────────

    def _write(self, message: Dict[str, Any]) -> None:
        if not self.is_running:
            raise MCPTransportError("MCP server is not running")
        line = json.dumps(message) + "\n"
        try:
            self._process.stdin.write(line.encode())
            self._process.stdin.flush()
        except (BrokenPipeError, OSError) as exc:
            raise MCPTransportError(f"MCP transport error: {exc}")

    def send(self, method: str, params: Optional[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        message = self._next_message(method, params)
        slot = self._pending.register(message["id"])
        try:
            self._write(message)
            return self._pending.wait(slot, method, timeout)
        finally:
            self._pending.discard(message["id"])

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self._write(message)

    def __del__(self):
        self.stop()


# ── Streamable HTTP ──────────────────────────────────────────────────────


class HTTPTransport(MCPTransport):
    """
    Streamable HTTP transport: one POST per request.

    The server answers with either a JSON body or an SSE stream carrying the
    response. The ``Mcp-Session-Id`` issued at initialization is echoed on
    every later request.
    """

    name = "http"

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None):
        super().__init__()
        self.url = url
        self.headers = headers or {}
        self.session_id: Optional[str] = None
        self._http: Optional[httpx.Client] = None

    def start(self, timeout: float = 30) -> None:
        if self._http is None:
            self._http = httpx.Client(headers=self.headers, timeout=timeout, follow_redirects=True)

    def stop(self) -> None:
        if self._http is not None:
            if self.session_id:
                try:
                    self._http.delete(self.url, headers={SESSION_HEADER: self.session_id}, timeout=5)
                except httpx.HTTPError:
                    logger.debug("Session teardown failed", exc_info=True)
            self._http.close()
        self._http = None

    def describe(self) -> str:
        return self.url

    def _request_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json, text/event-stream", "Content-Type": "application/json"}
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    def _post(self, message: Dict[str, Any], timeout: float) -> Optional[Dict[str, Any]]:
        if self._http is None:
            self.start(timeout)
        deadline = time.monotonic() + timeout
        try:
            with self._http.stream(
                "POST",
                self.url,
                content=json.dumps(message),
                headers=self._request_headers(),
                timeout=httpx.Timeout(timeout),
            ) as response:
                self._check_status(response)
                session_id = response.headers.get(SESSION_HEADER)
                if session_id:
                    self.session_id = session_id
                if "id" not in message or response.status_code == 202:
                    return None
                content_type = response.headers.get("content-type", "")
                if content_type.startswith("text/event-stream"):
                    return self._read_stream(response, message["id"], deadline, timeout)
                response.read()
                return response.json()
        except httpx.TimeoutException:
            raise MCPTimeoutError(f"request timeout after {timeout:g}s waiting for '{message.get('method')}'")
        except httpx.HTTPError as exc:
            raise MCPTransportError(f"MCP transport error: {exc}")
        except ValueError as exc:
            raise MCPTransportError(f"Invalid JSON from server: {exc}")

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        response.read()
        if response.status_code == 404 and self.session_id:
            raise MCPTransportError(f"Invalid session ID (HTTP 404): {response.text[:200]}")
        raise MCPTransportError(f"HTTP {response.status_code}: {response.text[:200]}")

    @staticmethod
    def _read_stream(response: httpx.Response, request_id: Any, deadline: float, timeout: float) -> Dict[str, Any]:
        def lines() -> Iterator[str]:
            # Checked per raw line: keep-alive comments never surface as events.
            for line in response.iter_lines():
                if time.monotonic() > deadline:
                    raise MCPTimeoutError(f"request timeout after {timeout:g}s waiting for response {request_id}")
                yield line

        for event, data in iter_sse_events(lines()):
            if event != "message":
                continue
            message = json.loads(data)
            if _is_response(message) and message.get("id") == request_id:
                return message
        raise MCPTransportError("MCP server closed the response stream without replying")

    def send(self, method: str, params: Optional[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        response = self._post(self._next_message(method, params), timeout)
        if response is None:
            raise MCPTransportError(f"MCP server accepted '{method}' but sent no response")
        return _raise_for_error(response)

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self._post(message, timeout=30)


# ── Legacy SSE ───────────────────────────────────────────────────────────


class SSETransport(MCPTransport):
    """
    HTTP+SSE transport: a long-lived GET stream plus POSTs to the endpoint
    the server announces in its first ``endpoint`` event.

    The stream has no read timeout; it stays open for the whole session.
    """

    name = "sse"

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None):
        super().__init__()
        self.url = url
        self.headers = headers or {}
        self.endpoint: Optional[str] = None
        self._http: Optional[httpx.Client] = None
        self._pending = _PendingResponses()
        self._endpoint_ready = threading.Event()
        self._closed = threading.Event()
        self._stream_error: Optional[Exception] = None
        self._connect_timeout = 30.0
        self._reader: Optional[threading.Thread] = None

    def start(self, timeout: float = 30) -> None:
        if self._reader is not None and self._reader.is_alive():
            return
        self._http = httpx.Client(headers=self.headers, follow_redirects=True)
        self._connect_timeout = timeout
        self._closed.clear()
        self._reader = threading.Thread(target=self._read_loop, name="mcprobe-sse-reader", daemon=True)
        self._reader.start()

        if not self._endpoint_ready.wait(timeout):
            self.stop()
            raise MCPTimeoutError(f"connection timeout after {timeout:g}s waiting for the SSE endpoint event")
        if self._stream_error is not None and self.endpoint is None:
            error = self._stream_error
            self.stop()
            raise MCPTransportError(f"Failed to open SSE stream: {error}")
        logger.debug("SSE POST endpoint: %s", self.endpoint)

    def stop(self) -> None:
        self._closed.set()
        if self._http is not None:
            self._http.close()
        self._http = None

    def describe(self) -> str:
        return self.url

    def _read_loop(self) -> None:
        try:
            with self._http.stream(
                "GET",
                self.url,
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(None, connect=self._connect_timeout),
            ) as response:
                if response.status_code >= 400:
                    response.read()
                    raise MCPTransportError(f"HTTP {response.status_code}: {response.text[:200]}")
                for event, data in iter_sse_events(response.iter_lines()):
                    if self._closed.is_set():
                        break
                    self._dispatch(event, data)
        except (httpx.HTTPError, MCPTransportError, RuntimeError) as exc:
            if not self._closed.is_set():
                self._stream_error = exc
                logger.debug("SSE stream ended: %s", exc)
        finally:
            self._endpoint_ready.set()
            self._pending.fail_all(MCPTransportError("SSE stream closed by server"))

    def _dispatch(self, event: str, data: str) -> None:
        if event == "endpoint":
            self.endpoint = urljoin(self.url, data.strip())
            self._endpoint_ready.set()
            return
        try:
            message = json.loads(data)
        except ValueError:
            logger.debug("Ignoring non-JSON SSE data: %r", data[:200])
            return
        if _is_response(message):
            self._pending.deliver(message)

    def _post(self, message: Dict[str, Any], timeout: float) -> None:
        if self._http is None or self.endpoint is None:
            raise MCPTransportError("SSE transport is not connected")
        try:
            response = self._http.post(self.endpoint, json=message, timeout=timeout)
        except httpx.TimeoutException:
            raise MCPTimeoutError(f"request timeout after {timeout:g}s posting '{message.get('method')}'")
        except httpx.HTTPError as exc:
            raise MCPTransportError(f"MCP transport error: {exc}")
        if response.status_code == 404:
            raise MCPTransportError(f"Invalid session ID (HTTP 404): {response.text[:200]}")
        if response.status_code >= 400:
            raise MCPTransportError(f"HTTP {response.status_code}: {response.text[:200]}")

    def send(self, method: str, params: Optional[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        message = self._next_message(method, params)
        slot = self._pending.register(message["id"])
        try:
            started = time.monotonic()
            self._post(message, timeout)
            remaining = max(timeout - (time.monotonic() - started), 0.0)
            return self._pending.wait(slot, method, remaining)
        finally:
            self._pending.discard(message["id"])

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self._post(message, timeout=30)


TRANSPORTS = ("sse", "http", "stdio")


def create_transport(
    kind: str,
    url: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    command: Optional[str] = None,
    args: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
) -> MCPTransport:
    """Build the transport named by ``kind``."""
    kind = kind.lower()
    if kind == "stdio":
        if not command:
            raise MCPTransportError("The stdio transport needs a server command")
        return StdioTransport(command, args=args, env=env)
    if kind not in ("sse", "http"):
        raise MCPTransportError(f"Unsupported transport type '{kind}'. Use 'sse', 'http' or 'stdio'")
    if not url:
        raise MCPTransportError(f"The {kind} transport needs a server URL")
    if kind == "sse":
        return SSETransport(url, headers=headers)
    return HTTPTransport(url, headers=headers)
