from collections.abc import Mapping
from typing import Any
from typing import Dict
from typing import Optional

from clientmetrics.constants import HTTP_HEADER_PARENT_ID
from clientmetrics.constants import HTTP_HEADER_RALLY_REQUEST_ID
from clientmetrics.constants import HTTP_HEADER_TRACE_ID


class HTTPPropagator(object):
    """A HTTP Propagator linking client side data requests with the server side spans answering them."""

    @staticmethod
    def inject(trace_id, parent_id, headers=None):
        # type: (str, str, Optional[Dict[str, str]]) -> Dict[str, str]
        """Inject the correlation ids into ``headers``.

        The server side span that answers the request becomes a child of
        ``parent_id``, which is the id of the client side dataRequest event.

        :param trace_id: id of the user action the request belongs to
        :param parent_id: id of the dataRequest event
        :param headers: HTTP headers to extend, a new dict is created if omitted
        :return: the headers
        """
        if headers is None:
            headers = {}
        headers[HTTP_HEADER_TRACE_ID] = trace_id
        headers[HTTP_HEADER_PARENT_ID] = parent_id
        return headers

    @staticmethod
    def extract_request_id(response):
        # type: (Any) -> Optional[str]
        """Find the server request id in the response of a data request.

        Looked up, in order, in a ``response_headers`` mapping, through a
        ``get_response_header`` function, or in a ``get_response_header``
        mapping. The camelCase spellings ``responseHeaders`` and
        ``getResponseHeader`` are accepted too.
        """
        if not response:
            return None

        headers = _first_attr(response, "response_headers", "responseHeaders")
        if isinstance(headers, Mapping):
            return headers.get(HTTP_HEADER_RALLY_REQUEST_ID)

        accessor = _first_attr(response, "get_response_header", "getResponseHeader")
        if callable(accessor):
            return accessor(HTTP_HEADER_RALLY_REQUEST_ID)
        if isinstance(accessor, Mapping):
            return accessor.get(HTTP_HEADER_RALLY_REQUEST_ID)
        return None


def _first_attr(obj, *names):
    # type: (Any, str) -> Any
    for name in names:
        value = getattr(obj, name, None)
        if value is not None:
            return value
    return None
