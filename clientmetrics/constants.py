"""
This module contains constants used across clientmetrics.

Constants that should NOT be referenced by clientmetrics users are marked with a leading underscore.
"""
# event types
ACTION = "action"
LOAD = "load"
DATA_REQUEST = "dataRequest"
ERROR = "error"

# event statuses
STATUS_READY = "Ready"
STATUS_NAVIGATION = "Navigation"

# Wire field names. Payload space is scarce, hence the acronyms.
BROWSER_TIMESTAMP_KEY = "bts"
TAB_ID_KEY = "tabId"
TRACE_ID_KEY = "tId"
EVENT_ID_KEY = "eId"
PARENT_ID_KEY = "pId"
EVENT_TYPE_KEY = "eType"
EVENT_DESCRIPTION_KEY = "eDesc"
COMPONENT_TYPE_KEY = "cmpType"
COMPONENT_ID_KEY = "cmpId"
COMPONENT_HIERARCHY_KEY = "cmpH"
START_KEY = "start"
STOP_KEY = "stop"
STATUS_KEY = "status"
APP_NAME_KEY = "appName"
URL_KEY = "url"
ERROR_KEY = "error"
FIRST_LOAD_KEY = "first"
RALLY_REQUEST_ID_KEY = "rallyRequestId"

# hierarchy string used when no handler knows the component hierarchy
UNKNOWN_HIERARCHY = "none"
UNKNOWN_URL = "unknown"
UNKNOWN_ERROR = "unknown error"

# outbound correlation headers
HTTP_HEADER_TRACE_ID = "X-Trace-Id"
HTTP_HEADER_PARENT_ID = "X-Parent-Id"
# header set by the server on responses
HTTP_HEADER_RALLY_REQUEST_ID = "RallyRequestID"

DEFAULT_BEACON_URL = "https://trust.f4tech.com/beacon/"
# max number of errors sent per session
DEFAULT_ERROR_LIMIT = 25
DEFAULT_MIN_NUMBER_OF_EVENTS = 25
DEFAULT_MAX_LENGTH = 60000

_ERROR_LENGTH_RATIO = 0.9
