from collections import deque
import threading
from typing import Any
from typing import Callable
from typing import Deque
from typing import Dict
from typing import List

import attr


class BufferFull(Exception):
    pass


class BufferItemTooLarge(Exception):
    pass


@attr.s
class EventBuffer(object):
    """A thread-safe buffer of encoded-size-metered event records.

    :param max_size: The maximum size (in bytes) of the encoded batch.
    :param meter: Returns the encoded size of a record.
    """

    max_size = attr.ib(type=int)
    meter = attr.ib(type=Callable[[Dict[str, Any]], int], repr=False)
    _size = attr.ib(init=False, type=int, default=0, repr=True)
    _lock = attr.ib(init=False, factory=threading.Lock, repr=False)
    _events = attr.ib(init=False, factory=deque, repr=False, type=Deque[Dict[str, Any]])

    def __len__(self):
        return len(self._events)

    @property
    def size(self):
        # type: () -> int
        """Return the size in bytes of the buffered records once encoded as a batch."""
        with self._lock:
            return self._batch_size(self._size, len(self._events))

    @staticmethod
    def _batch_size(items_size, count):
        # type: (int, int) -> int
        # a JSON array: brackets and one comma between records
        return items_size + max(count - 1, 0) + 2

    def _clear(self):
        # type: () -> None
        self._events.clear()
        self._size = 0

    def put(self, event):
        # type: (Dict[str, Any]) -> None
        """Put a record in the buffer.

        :raises BufferItemTooLarge: the record alone does not fit in a batch.
        :raises BufferFull: the record does not fit next to the buffered ones.
        """
        item_len = self.meter(event)
        if self._batch_size(item_len, 1) > self.max_size:
            raise BufferItemTooLarge(item_len)

        with self._lock:
            if self._batch_size(self._size + item_len, len(self._events) + 1) <= self.max_size:
                self._events.append(event)
                self._size += item_len
            else:
                raise BufferFull(item_len)

    def get(self):
        # type: () -> List[Dict[str, Any]]
        """Return the entire buffer.

        The buffer is cleared in the process.
        """
        with self._lock:
            try:
                return list(self._events)
            finally:
                self._clear()
