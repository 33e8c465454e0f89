import abc
import json
import sys
import threading
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import TextIO

from clientmetrics.internal.buffer import BufferFull
from clientmetrics.internal.buffer import BufferItemTooLarge
from clientmetrics.internal.buffer import EventBuffer
from clientmetrics.internal.encoding import JSONEncoder
from clientmetrics.internal.logger import get_logger
from clientmetrics.settings import config
from clientmetrics.transport import HTTPTransport


log = get_logger(__name__)


class EventSender(metaclass=abc.ABCMeta):
    """What the aggregator needs from a sender.

    ``send`` must never raise. ``flush`` transmits whatever is buffered; events
    sent afterwards start a new batch. A sender may also define
    ``get_max_length()`` returning the maximum payload size of one batch, which
    the aggregator uses to truncate error messages.
    """

    @abc.abstractmethod
    def send(self, event):
        # type: (Dict[str, Any]) -> None
        pass

    @abc.abstractmethod
    def flush(self):
        # type: () -> None
        pass


class LogSender(EventSender):
    """Sender writing each batch as one JSON line, for local debugging."""

    def __init__(
        self,
        out=sys.stdout,  # type: TextIO
        keys_to_ignore=None,  # type: Optional[Iterable[str]]
    ):
        # type: (...) -> None
        self.out = out
        self.keys_to_ignore = frozenset(keys_to_ignore or ())
        self._events = []  # type: List[Dict[str, Any]]
        self._lock = threading.Lock()

    def send(self, event):
        # type: (Dict[str, Any]) -> None
        with self._lock:
            self._events.append({k: v for k, v in event.items() if k not in self.keys_to_ignore})

    def flush(self):
        # type: () -> None
        with self._lock:
            events, self._events = self._events, []
        if not events:
            return
        self.out.write(json.dumps(events, cls=JSONEncoder) + "\n")
        self.out.flush()


class BatchSender(EventSender):
    """Buffers finished events and sends them to the beacon in batches.

    A batch is sent when ``flush`` is called, once ``min_number_of_events``
    events are buffered, or before an event that would make the encoded batch
    larger than ``max_length`` bytes is buffered. An event too large to fit in
    any batch is dropped.
    """

    def __init__(
        self,
        beacon_url=None,  # type: Optional[str]
        keys_to_ignore=None,  # type: Optional[Iterable[str]]
        min_number_of_events=None,  # type: Optional[int]
        max_length=None,  # type: Optional[int]
        transport=None,  # type: Optional[HTTPTransport]
    ):
        # type: (...) -> None
        max_length = config.max_length if max_length is None else max_length
        min_number_of_events = config.min_number_of_events if min_number_of_events is None else min_number_of_events
        if max_length <= 0:
            raise ValueError("Max length must be positive")
        if min_number_of_events <= 0:
            raise ValueError("Min number of events must be positive")

        self.beacon_url = beacon_url or config.beacon_url
        self.keys_to_ignore = frozenset(keys_to_ignore or ())
        self.min_number_of_events = min_number_of_events
        self.max_length = max_length
        self.encoder = JSONEncoder()
        self.transport = transport if transport is not None else HTTPTransport(self.beacon_url)
        self._buffer = EventBuffer(max_size=max_length, meter=self.encoder.meter)
        # serializes drains so batches reach the transport in buffer order
        self._flush_lock = threading.RLock()

    def __len__(self):
        return len(self._buffer)

    def get_max_length(self):
        # type: () -> int
        return self.max_length

    def send(self, event):
        # type: (Dict[str, Any]) -> None
        record = {k: v for k, v in event.items() if k not in self.keys_to_ignore}
        try:
            self._put(record)
        except BufferItemTooLarge as e:
            log.warning(
                "event (%db) larger than the batch limit (%db), dropping",
                e.args[0],
                self.max_length,
            )
            return
        except Exception:
            log.error("failed to buffer event %r", record.get("eId"), exc_info=True)
            return

        if len(self._buffer) >= self.min_number_of_events:
            self.flush()

    def _put(self, record):
        # type: (Dict[str, Any]) -> None
        with self._flush_lock:
            try:
                self._buffer.put(record)
            except BufferFull:
                # make room by sending what is buffered, the record starts the next batch
                self.flush()
                self._buffer.put(record)

    def flush(self):
        # type: () -> None
        with self._flush_lock:
            events = self._buffer.get()
            if not events:
                return
            try:
                payload = self.encoder.encode_events(events)
            except Exception:
                log.error("failed to encode %d events", len(events), exc_info=True)
                return
            try:
                self.transport.send(payload, content_type=self.encoder.content_type)
            except Exception:
                log.error("failed to send %d events to %s", len(events), self.beacon_url, exc_info=True)

    def stop(self, timeout=None):
        # type: (Optional[float]) -> None
        """Flush the buffer and stop the transport."""
        self.flush()
        self.transport.stop()
        self.transport.join(timeout)
