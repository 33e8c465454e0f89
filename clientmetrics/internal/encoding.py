import json
from typing import Any
from typing import Dict
from typing import List


__all__ = ["JSONEncoder"]


class JSONEncoder(json.JSONEncoder):
    """Compact JSON encoding of event batches: a JSON array of event records."""

    content_type = "application/json"

    def __init__(self, **kwargs):
        kwargs.setdefault("separators", (",", ":"))
        kwargs.setdefault("ensure_ascii", False)
        super(JSONEncoder, self).__init__(**kwargs)

    def default(self, o):
        # values from default params or misc data that JSON does not know about
        if isinstance(o, (set, frozenset)):
            return list(o)
        return str(o)

    def encode_events(self, events):
        # type: (List[Dict[str, Any]]) -> bytes
        return self.encode(events).encode("utf-8")

    def meter(self, event):
        # type: (Dict[str, Any]) -> int
        """Return the size in bytes of ``event`` once encoded."""
        return len(self.encode(event).encode("utf-8"))

    def truncate(self, text, size):
        # type: (str, int) -> str
        """Return the longest prefix of ``text`` taking at most ``size`` bytes once encoded.

        The size is the one of the encoded string without its quotes, escape
        sequences and multi-byte characters included.
        """
        if self._string_size(text) <= size:
            return text

        # every character takes at least one byte
        low, high = 0, min(len(text), max(size, 0))
        while low < high:
            mid = (low + high + 1) // 2
            if self._string_size(text[:mid]) <= size:
                low = mid
            else:
                high = mid - 1
        return text[:low]

    def _string_size(self, text):
        # type: (str) -> int
        return len(self.encode(text).encode("utf-8")) - 2
