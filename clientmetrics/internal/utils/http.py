from typing import Optional

from clientmetrics.constants import UNKNOWN_URL


_WEBSERVICE_SLUG = "webservice/"


def shorten_url(url):
    # type: (Optional[str]) -> str
    """Massage a data request url into a smaller form.

    Web service urls keep only the part after ``webservice/`` up to the query
    string, other urls only lose their query string:

        http://server/slm/webservice/1.27/Defect.js?foo=bar  ->  1.27/Defect.js
        http://server/x?y=1                                   ->  http://server/x

    :param url: The url to clean up
    :return: The shortened url, ``"unknown"`` if there is none
    """
    if not url:
        return UNKNOWN_URL

    webservice_index = url.find(_WEBSERVICE_SLUG)
    if webservice_index > -1:
        start = webservice_index + len(_WEBSERVICE_SLUG)
        question_index = url.find("?", webservice_index)
        if question_index < 0:
            question_index = len(url)
        return url[start:question_index]

    h, _, _ = url.partition("?")
    return h


class Response(object):
    """
    Custom API Response object to represent a response from the beacon.

    The body is read once into the instance before the connection used for
    the request is closed.
    """

    __slots__ = ["status", "body", "reason"]

    def __init__(self, status=None, body=None, reason=None):
        # type: (Optional[int], Optional[bytes], Optional[str]) -> None
        self.status = status
        self.body = body
        self.reason = reason

    @classmethod
    def from_http_response(cls, resp):
        """
        Build a ``Response`` from the provided ``HTTPResponse`` object.

        This function will call `.read()` to consume the body of the ``HTTPResponse`` object.
        """
        return cls(
            status=resp.status,
            body=resp.read(),
            reason=getattr(resp, "reason", None),
        )

    def __repr__(self):
        return "{0}(status={1!r}, body={2!r}, reason={3!r})".format(
            self.__class__.__name__,
            self.status,
            self.body,
            self.reason,
        )
