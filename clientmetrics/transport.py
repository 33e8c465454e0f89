from collections import deque
import http.client as httplib
import logging
import time
from typing import Deque
from typing import Dict
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import urlparse

from clientmetrics.internal import periodic
from clientmetrics.internal import service
from clientmetrics.internal.logger import get_logger
from clientmetrics.internal.utils.http import Response
from clientmetrics.internal.utils.retry import fibonacci_backoff_with_jitter
from clientmetrics.settings import config


log = get_logger(__name__)

ConnectionType = Union[httplib.HTTPConnection, httplib.HTTPSConnection]

# payloads waiting for the background worker
DEFAULT_MAX_QUEUE_SIZE = 100


def _human_size(nbytes):
    """Return a human-readable size."""
    i = 0
    suffixes = ["B", "KB", "MB", "GB"]
    while nbytes >= 1000 and i < len(suffixes) - 1:
        nbytes /= 1000.0
        i += 1
    f = ("%.2f" % nbytes).rstrip("0").rstrip(".")
    return "%s%s" % (f, suffixes[i])


def get_connection(url, timeout):
    # type: (str, float) -> ConnectionType
    """Return an HTTP connection to the host of ``url``."""
    parsed = urlparse(url)
    if parsed.scheme == "https":
        return httplib.HTTPSConnection(parsed.hostname or "", parsed.port, timeout=timeout)
    if parsed.scheme == "http":
        return httplib.HTTPConnection(parsed.hostname or "", parsed.port, timeout=timeout)
    raise ValueError("Unsupported protocol '%s'" % parsed.scheme)


class TransportError(Exception):
    pass


class HTTPTransport(periodic.PeriodicService):
    """Fire-and-forget delivery of encoded batches to the beacon.

    In sync mode a payload is POSTed on the calling thread. Otherwise it is
    queued and POSTed by a background worker that starts on the first send.
    Failed requests are retried with a fibonacci backoff, then dropped.
    """

    RETRY_ATTEMPTS = 3
    HTTP_METHOD = "POST"

    def __init__(
        self,
        beacon_url,  # type: str
        timeout=None,  # type: Optional[float]
        interval=None,  # type: Optional[float]
        sync_mode=None,  # type: Optional[bool]
        headers=None,  # type: Optional[Dict[str, str]]
        max_queue_size=DEFAULT_MAX_QUEUE_SIZE,  # type: int
    ):
        # type: (...) -> None
        if interval is None:
            interval = config.transport_interval
        super(HTTPTransport, self).__init__(interval=interval)
        self.beacon_url = beacon_url
        self._path = urlparse(beacon_url).path or "/"
        self._timeout = config.transport_timeout if timeout is None else timeout
        self._sync_mode = config.sync_mode if sync_mode is None else sync_mode
        self._headers = headers or {}
        self._queue = deque(maxlen=max_queue_size)  # type: Deque[Tuple[bytes, str]]

        self._send_payload_with_backoff = fibonacci_backoff_with_jitter(  # type: ignore[assignment]
            attempts=self.RETRY_ATTEMPTS,
            initial_wait=0.618 * self.interval / (1.618**self.RETRY_ATTEMPTS) / 2,
            until=lambda result: isinstance(result, Response),
        )(self._send_payload)

    def send(self, payload, content_type="application/json"):
        # type: (bytes, str) -> None
        """Deliver ``payload`` to the beacon. Never raises."""
        if self._sync_mode:
            self._send_or_drop(payload, content_type)
            return

        if self.status != service.ServiceStatus.RUNNING:
            try:
                self.start()
            except service.ServiceStatusError:
                pass

        if len(self._queue) == self._queue.maxlen:
            log.warning("transport queue full (%d payloads), dropping the oldest one", self._queue.maxlen)
        self._queue.append((payload, content_type))

    def _put(self, payload, headers):
        # type: (bytes, Dict[str, str]) -> Response
        start = time.monotonic()
        conn = get_connection(self.beacon_url, self._timeout)
        try:
            log.debug("Sending request: %s %s %s", self.HTTP_METHOD, self._path, headers)
            conn.request(self.HTTP_METHOD, self._path, payload, headers)
            resp = conn.getresponse()
            response = Response.from_http_response(resp)
        finally:
            conn.close()
        t = time.monotonic() - start
        log_level = logging.WARNING if t >= self.interval else logging.DEBUG
        log.log(log_level, "sent %s in %.5fs to %s", _human_size(len(payload)), t, self.beacon_url)
        return response

    def _send_payload(self, payload, content_type):
        # type: (bytes, str) -> Response
        headers = self._headers.copy()
        headers["Content-Type"] = content_type
        response = self._put(payload, headers)
        if response.status >= 400:
            raise TransportError(
                "failed to send batch to beacon at %s: HTTP error status %s, reason %s, body %r"
                % (self.beacon_url, response.status, response.reason, response.body)
            )
        return response

    def _send_or_drop(self, payload, content_type):
        # type: (bytes, str) -> None
        try:
            self._send_payload_with_backoff(payload, content_type)
        except Exception:
            log.error(
                "failed to send, dropping %s batch to beacon at %s after %d retries",
                _human_size(len(payload)),
                self.beacon_url,
                self.RETRY_ATTEMPTS,
                exc_info=True,
            )

    def flush_queue(self):
        # type: () -> None
        """Send every queued payload on the calling thread."""
        while self._queue:
            try:
                payload, content_type = self._queue.popleft()
            except IndexError:
                break
            self._send_or_drop(payload, content_type)

    def periodic(self):
        # type: () -> None
        self.flush_queue()

    def on_shutdown(self):
        # type: () -> None
        self.flush_queue()
