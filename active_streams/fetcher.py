"""
Concurrent session fetching across all configured media servers.
"""

import json
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import requests
import urllib3

from active_streams.adapters import ServerRequest, UnsupportedServerTypeError, get_adapter
from active_streams.logging_utils import get_logger, redact
from active_streams.models import (
    DisplayOptions,
    FetchError,
    FetchResult,
    ServerDescriptor,
    Stream,
)

# Suppress SSL warnings for self-signed certificates
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

logger = get_logger("fetcher")

CONNECT_TIMEOUT = 5
TOTAL_TIMEOUT = 10
CHUNK_SIZE = 8192


class DeadlineExceeded(requests.Timeout):
    """Raised when a response is not fully received within the total timeout."""


@dataclass
class ServerResult:
    """Outcome of fetching a single server."""

    server: ServerDescriptor
    streams: list[Stream] = field(default_factory=list)
    error: Optional[FetchError] = None


@dataclass
class ServerResponse:
    """Status and fully read body of one request."""

    status_code: int
    body: bytes = b''

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class ConnectionCheck:
    """Outcome of a connection check against one server."""

    success: bool
    message: str

    def to_dict(self) -> dict:
        if self.success:
            return {'success': True, 'message': self.message}
        return {'success': False, 'error': self.message}


class StreamFetcher:
    """Fetches and normalizes active sessions from many servers in parallel."""

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        total_timeout: float = TOTAL_TIMEOUT,
        deadline_grace: float = 1.0,
    ):
        """
        Initialize the fetcher.

        Args:
            connect_timeout: Seconds allowed to establish each connection
            total_timeout: Seconds allowed for each request overall
            deadline_grace: Extra seconds the cycle waits before giving up
                on requests that are still running
        """
        self.connect_timeout = connect_timeout
        self.total_timeout = total_timeout
        self.deadline_grace = deadline_grace

    def fetch_all(
        self,
        servers: Sequence[ServerDescriptor],
        options: DisplayOptions = DisplayOptions(),
    ) -> FetchResult:
        """
        Fetch every server concurrently and merge the results.

        Streams and errors are ordered by the servers' position in the
        sequence, not by completion time. A slow or failing server only
        produces a FetchError for itself.

        Args:
            servers: Registry snapshot, in display order
            options: Display options passed to the normalizers

        Returns:
            FetchResult with all streams and per-server errors
        """
        servers = list(servers)
        if not servers:
            return FetchResult()

        slots: list[Optional[ServerResult]] = [None] * len(servers)

        executor = ThreadPoolExecutor(max_workers=len(servers), thread_name_prefix='stream-fetch')
        try:
            futures = {
                executor.submit(self.fetch_server, server, options): index
                for index, server in enumerate(servers)
            }
            done, _ = wait(futures, timeout=self.total_timeout + self.deadline_grace)
            for future in done:
                index = futures[future]
                try:
                    slots[index] = future.result()
                except Exception:
                    logger.exception("Unexpected error while fetching %s", servers[index].name)
                    slots[index] = ServerResult(
                        server=servers[index],
                        error=FetchError(servers[index].name, "Unexpected error"),
                    )
        finally:
            # Stragglers are reported as timeouts below; do not block on them
            executor.shutdown(wait=False, cancel_futures=True)

        result = FetchResult()
        for index, slot in enumerate(slots):
            if slot is None:
                server = servers[index]
                logger.warning("%s server '%s' did not answer within %ss",
                               server.type, server.name, self.total_timeout)
                slot = ServerResult(
                    server=server,
                    error=FetchError(server.name, f"Timed out after {self.total_timeout:g}s"),
                )
            result.streams.extend(slot.streams)
            if slot.error is not None:
                result.errors.append(slot.error)

        logger.debug("Fetched %d stream(s) from %d server(s), %d error(s)",
                     len(result.streams), len(servers), len(result.errors))
        return result

    def fetch_server(
        self,
        server: ServerDescriptor,
        options: DisplayOptions = DisplayOptions(),
    ) -> ServerResult:
        """
        Fetch and normalize the active sessions of one server.

        Never raises: every failure is turned into a FetchError.
        """
        try:
            adapter = get_adapter(server.type)
        except UnsupportedServerTypeError:
            logger.warning("Skipping server '%s': unknown server type '%s'", server.name, server.type)
            return ServerResult(server=server, error=FetchError(server.name, "Unknown server type"))

        request = adapter.build_request(server)
        try:
            response = self._get(request)
        except DeadlineExceeded:
            logger.warning("%s server '%s' did not finish answering within %ss",
                           server.type, server.name, self.total_timeout)
            return ServerResult(
                server=server,
                error=FetchError(server.name, f"Timed out after {self.total_timeout:g}s"),
            )
        except requests.RequestException as e:
            message = redact(str(e), [server.token])
            logger.warning("%s connection error for %s: %s", server.type, server.name, message)
            return ServerResult(server=server, error=FetchError(server.name, f"Connection error: {message}"))

        if response.status_code != 200:
            logger.warning("%s HTTP error for %s: HTTP %s", server.type, server.name, response.status_code)
            return ServerResult(server=server, error=FetchError(server.name, f"HTTP {response.status_code}"))

        try:
            payload = response.json()
        except ValueError:
            logger.warning("%s server %s returned a body that is not JSON", server.type, server.name)
            return ServerResult(server=server, error=FetchError(server.name, "Invalid response from server"))

        try:
            streams = adapter.normalize(payload, server, options)
        except Exception:
            logger.exception("Failed to normalize sessions from %s", server.name)
            return ServerResult(server=server, error=FetchError(server.name, "Failed to parse response"))

        return ServerResult(server=server, streams=streams)

    def check_connection(self, server: ServerDescriptor) -> ConnectionCheck:
        """
        Verify that a server is reachable and accepts its credential.

        Args:
            server: Server to check

        Returns:
            ConnectionCheck with a user-facing message
        """
        try:
            adapter = get_adapter(server.type)
        except UnsupportedServerTypeError:
            return ConnectionCheck(False, "Invalid server type")

        address = server.base_url
        try:
            response = self._get(adapter.build_info_request(server))
        except requests.RequestException as e:
            message = f"Failed to connect to {address} - Error: {redact(str(e), [server.token])}"
            logger.warning("Test connection failed for %s server: %s", server.type, message)
            return ConnectionCheck(False, message)

        if response.status_code in (200, 204):
            try:
                payload = response.json()
            except ValueError:
                payload = None
            server_name = adapter.describe(payload)
            if server_name:
                return ConnectionCheck(True, f"Connected to: {server_name}")
            return ConnectionCheck(True, "Connection successful")

        if response.status_code == 401:
            message = "Authentication failed (HTTP 401) - Please verify your token/API key"
        elif response.status_code == 404:
            message = "Server endpoint not found (HTTP 404) - Check host and port"
        else:
            message = f"HTTP {response.status_code}"
        logger.warning("Test connection failed for %s server at %s: %s", server.type, address, message)
        return ConnectionCheck(False, message)

    def _get(self, request: ServerRequest) -> ServerResponse:
        """
        Perform one GET and read the whole body within total_timeout.

        Raises:
            DeadlineExceeded: If the body is still arriving at the deadline
            requests.RequestException: On any other transport failure
        """
        deadline = time.monotonic() + self.total_timeout
        response = requests.get(
            request.url,
            headers=request.headers,
            timeout=(self.connect_timeout, self.total_timeout),
            verify=request.verify,
            stream=True,
        )
        try:
            body = _read_body(response, deadline)
        finally:
            response.close()
        return ServerResponse(status_code=response.status_code, body=body)


def _read_body(response: requests.Response, deadline: float) -> bytes:
    """
    Read a streamed response body, giving up at the monotonic deadline.

    The read timeout only bounds each socket read, so a watchdog shuts the
    socket down at the deadline to unblock a read that is still waiting.
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise DeadlineExceeded("Response not received before the deadline")

    expired = threading.Event()
    watchdog = threading.Timer(remaining, _abort_response, args=(response, expired))
    watchdog.daemon = True
    watchdog.start()

    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if expired.is_set() or time.monotonic() >= deadline:
                raise DeadlineExceeded("Response body not received before the deadline")
            chunks.append(chunk)
    except requests.RequestException as e:
        if expired.is_set() and not isinstance(e, DeadlineExceeded):
            raise DeadlineExceeded("Response body not received before the deadline") from e
        raise
    finally:
        watchdog.cancel()

    if expired.is_set():
        raise DeadlineExceeded("Response body not received before the deadline")
    return b''.join(chunks)


def _abort_response(response: requests.Response, expired: threading.Event) -> None:
    expired.set()
    connection = getattr(response.raw, 'connection', None)
    sock = getattr(connection, 'sock', None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        # Socket already closed by the reading thread
        logger.debug("Socket shutdown after deadline failed: %s", e)
