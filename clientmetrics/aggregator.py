"""
The aggregator correlates client metric events into traces.

Terminology:

* **event:** a distinct, measurable thing that the page did or the user
  invoked: clicking a button, a panel loading, a grid fetching its rows.
* **trace:** every event caused by one user action. The action's event id
  is the trace id of all of them.
* **handler:** a helper telling the aggregator what a component is and where
  it sits in the component hierarchy, see :mod:`clientmetrics.handlers`.
* **status:** the ultimate fate of an event. ``Ready`` when it concluded
  normally, ``Navigation`` when the user left before it completed.

Events are started, kept pending, then finished and handed to the sender. A
load or a data request becomes the child of the most recent pending event of
a component found in its hierarchy, or of the user action when there is none::

    aggregator = Aggregator(handlers=[WidgetHandler()])
    aggregator.record_action(component=button, description="open board")
    aggregator.begin_load(component=board)
    metadata = aggregator.begin_data_request(board, "http://host/slm/webservice/v2.0/Defect.js?start=1")
    ...
    aggregator.end_data_request(board, response, metadata.request_id)
    aggregator.end_load(component=board)
"""
import time
import typing as t

import attr

from clientmetrics import constants
from clientmetrics.event import Event
from clientmetrics.handlers import HandlerRegistry
from clientmetrics.internal.components import ComponentRegistry
from clientmetrics.internal.encoding import JSONEncoder
from clientmetrics.internal.ids import new_id
from clientmetrics.internal.logger import get_logger
from clientmetrics.internal.periodic import PeriodicThread
from clientmetrics.internal.utils.http import shorten_url
from clientmetrics.propagation.http import HTTPPropagator
from clientmetrics.sender import BatchSender
from clientmetrics.settings import config


log = get_logger(__name__)


def _now_ms():
    # type: () -> int
    return int(time.time() * 1000)


@attr.s(frozen=True, slots=True)
class DataRequestMetadata(object):
    """Correlation data of a data request, to forward to the server."""

    trace_id = attr.ib(type=str)
    request_id = attr.ib(type=str)
    # headers making the server side span a child of the dataRequest event
    headers = attr.ib(type=t.Dict[str, str])


class Aggregator(object):
    """Correlates client metric events and pushes them to a sender.

    :param sender: where finished events go, a :class:`BatchSender` by default.
    :param handlers: handlers resolving component metadata, in query order.
    :param flush_interval: if set, events are sent at least every that many milliseconds.
    :param beacon_url: URL of the beacon used by the default sender.
    :param error_limit: maximum number of errors recorded per session.
    :param ajax_providers: request event sources wired up by the owner.
    :param id_generator: returns unique identifiers, random UUIDs by default.
    """

    def __init__(
        self,
        sender=None,
        handlers=None,  # type: t.Optional[t.Union[HandlerRegistry, t.Iterable[t.Any]]]
        flush_interval=None,  # type: t.Optional[int]
        beacon_url=None,  # type: t.Optional[str]
        error_limit=None,  # type: t.Optional[int]
        ajax_providers=None,  # type: t.Optional[t.Iterable[t.Any]]
        id_generator=None,  # type: t.Optional[t.Callable[[], str]]
    ):
        # type: (...) -> None
        self.ajax_providers = list(ajax_providers or [])
        self._new_id = id_generator or new_id

        if isinstance(handlers, HandlerRegistry):
            self.handlers = handlers
        else:
            self.handlers = HandlerRegistry(handlers)

        self._pending_events = []  # type: t.List[Event]
        self._browser_tab_id = self._new_id()
        self._starting_time = _now_ms()
        self._components = ComponentRegistry(key_func=self.handlers.get_component_key)
        self._session = 0
        self._default_params = None  # type: t.Optional[t.Dict[str, t.Any]]
        self._current_user_action_event_id = None  # type: t.Optional[str]

        # errors reported this session, to stop before flooding the beacon
        self._error_count = 0
        self.error_limit = config.error_limit if error_limit is None else error_limit

        self.sender = sender if sender is not None else BatchSender(beacon_url=beacon_url)

        self._encoder = JSONEncoder()
        self._max_length = None  # type: t.Optional[int]
        self.max_error_length = None  # type: t.Optional[int]
        get_max_length = getattr(self.sender, "get_max_length", None)
        if callable(get_max_length):
            self._max_length = get_max_length() or None
            if self._max_length:
                # each event of a full batch gets an equal share of the payload
                batch_size = getattr(self.sender, "min_number_of_events", None) or 1
                self.max_error_length = max(1, int(self._max_length * constants._ERROR_LENGTH_RATIO / batch_size))

        self.flush_interval = config.flush_interval if flush_interval is None else flush_interval
        self._flush_worker = None  # type: t.Optional[PeriodicThread]
        if self.flush_interval:
            self._flush_worker = PeriodicThread(
                self.flush_interval / 1000.0,
                target=self.send_all_remaining_events,
                name="%s:%s" % (__name__, self.__class__.__name__),
            )
            self._flush_worker.start()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.destroy()

    def destroy(self):
        # type: () -> None
        """Stop the periodic flush, if any. Safe to call more than once."""
        worker, self._flush_worker = self._flush_worker, None
        if worker is not None:
            worker.stop()

    def start_session(self, status, default_params=None):
        # type: (str, t.Optional[t.Dict[str, t.Any]]) -> None
        """Start a new session.

        Pending events are finished with ``status`` and sent, then the error
        count and the loaded components are reset.

        :param status: status given to every pending event, usually ``Navigation``
        :param default_params: parameters added to every event of the session
        """
        self._conclude_pending_events(status)
        self.send_all_remaining_events()
        self._default_params = default_params

        self._error_count = 0
        self._session += 1

    def record_action(self, component=None, description=None, start_time=None, misc_data=None):
        # type: (t.Any, t.Optional[str], t.Optional[int], t.Optional[t.Dict[str, t.Any]]) -> str
        """Record a user action. It starts a new trace.

        :param start_time: absolute timestamp in milliseconds, now if omitted
        :return: the id of the action, which is the new trace id
        """
        event_id = self._new_id()
        start = self._get_relative_time(start_time)

        action = self._start_event(
            Event.create(
                constants.ACTION,
                event_id,
                event_id,
                component,
                key_func=self.handlers.get_component_key,
                component_type=self.get_component_type(component),
                component_id=self._get_component_id(component),
                hierarchy=self._get_hierarchy_string(component),
                description=description,
                status=constants.STATUS_READY,
                start=start,
                misc_data=dict(misc_data or {}),
            )
        )

        self._current_user_action_event_id = event_id

        self._finish_event(action, {constants.STOP_KEY: start})
        return event_id

    def record_error(self, message=None):
        # type: (t.Optional[str]) -> None
        """Record an error in the current trace and send it right away.

        Ignored when there is no current trace or when the error limit of the
        session is reached.
        """
        trace_id = self._current_user_action_event_id
        if not trace_id or self._error_count >= self.error_limit:
            return
        self._error_count += 1

        start = self._get_relative_time()
        error_event = self._start_event(
            Event.create(
                constants.ERROR,
                self._new_id(),
                trace_id,
                parent_id=trace_id,
                start=start,
            )
        )
        finish_data = {constants.STOP_KEY: start}
        error_event.error = self._fit_error_message(error_event, finish_data, message or constants.UNKNOWN_ERROR)
        self._finish_event(error_event, finish_data)

        # errors must not wait in the batch
        self.send_all_remaining_events()

    def _fit_error_message(self, event, finish_data, message):
        # type: (Event, t.Dict[str, t.Any], str) -> str
        """Cut ``message`` to its share of a batch, measured in encoded bytes.

        The message is also cut so that the encoded error event alone fits in a
        batch.
        """
        if not self.max_error_length or self._max_length is None:
            return message

        event.error = ""
        record = event.to_dict(finish_data, self._default_params)
        # a lone event is sent as a one element JSON array
        room = self._max_length - 2 - self._encoder.meter(record)
        return self._encoder.truncate(message, min(self.max_error_length, room))

    def begin_load(self, component, description=None, start_time=None, misc_data=None):
        # type: (t.Any, t.Optional[str], t.Optional[int], t.Optional[t.Dict[str, t.Any]]) -> None
        """Start the load event of ``component``.

        Ignored when there is no current trace or when a load of the component
        is already in flight.
        """
        trace_id = self._current_user_action_event_id
        if component is None or not trace_id:
            return

        state = self._components.get(component)
        if state.load_event_id:
            log.debug("load of component %r already in flight, ignoring", component)
            return

        start = self._get_relative_time(start_time)
        event_id = self._new_id()
        state.load_event_id = event_id

        self._start_event(
            Event.create(
                constants.LOAD,
                event_id,
                trace_id,
                component,
                key_func=self.handlers.get_component_key,
                parent_id=self._find_parent_id(component, trace_id),
                component_type=self.get_component_type(component),
                component_id=self._get_component_id(component),
                hierarchy=self._get_hierarchy_string(component),
                description=description,
                start=start,
                misc_data=dict(misc_data or {}),
            )
        )

    def end_load(self, component, stop_time=None, misc_data=None):
        # type: (t.Any, t.Optional[int], t.Optional[t.Dict[str, t.Any]]) -> None
        """Finish the load event of ``component`` with the ``Ready`` status.

        :param stop_time: absolute timestamp in milliseconds, now if omitted
        """
        if component is None or not self._current_user_action_event_id:
            return

        state = self._components.peek(component)
        if state is None or not state.load_event_id:
            # load end without a load begin, not much can be done with it
            return

        event_id, state.load_event_id = state.load_event_id, None

        event = self._find_pending_event(event_id)
        if event is None:
            # The load began before a new session was started: out of scope.
            return

        is_first_load = state.loaded_session != self._session
        state.loaded_session = self._session

        # caller data may override the status and the first load flag, never the stop time
        finish_data = {
            constants.STATUS_KEY: constants.STATUS_READY,
            constants.FIRST_LOAD_KEY: is_first_load,
        }  # type: t.Dict[str, t.Any]
        finish_data.update(misc_data or {})
        finish_data[constants.STOP_KEY] = self._get_relative_time(stop_time)
        self._finish_event(event, finish_data)

    def begin_data_request(self, requester, url):
        # type: (t.Any, t.Optional[str]) -> t.Optional[DataRequestMetadata]
        """Start the event of a data request issued by ``requester``.

        :return: the correlation data to send along with the request, ``None``
            when there is no current trace
        """
        trace_id = self._current_user_action_event_id
        if requester is None or not trace_id:
            return None

        event_id = self._new_id()
        parent_id = self._find_parent_id(requester, trace_id)
        request_id = self._new_id()
        self._components.get(requester).data_request_event_ids[request_id] = event_id

        self._start_event(
            Event.create(
                constants.DATA_REQUEST,
                event_id,
                trace_id,
                requester,
                key_func=self.handlers.get_component_key,
                parent_id=parent_id,
                component_type=self.get_component_type(requester),
                component_id=self._get_component_id(requester),
                hierarchy=self._get_hierarchy_string(requester),
                url=self._get_url(url),
            )
        )

        # The dataRequest event is the parent of the server side span
        # answering the request, hence the event id as parent id.
        return DataRequestMetadata(
            trace_id=trace_id,
            request_id=request_id,
            headers=HTTPPropagator.inject(trace_id, event_id),
        )

    def end_data_request(self, requester, response, request_id):
        # type: (t.Any, t.Any, t.Optional[str]) -> None
        """Finish the event of the data request ``request_id`` with the ``Ready`` status.

        The server request id found in ``response`` is attached to the event.
        """
        if requester is None or not self._current_user_action_event_id:
            return

        state = self._components.peek(requester)
        if state is None:
            return
        event = self._find_pending_event(state.data_request_event_ids.pop(request_id, None))
        if event is None:
            # The request started before a new session was started: out of scope.
            return

        finish_data = {constants.STATUS_KEY: constants.STATUS_READY}  # type: t.Dict[str, t.Any]
        rally_request_id = HTTPPropagator.extract_request_id(response)
        if rally_request_id:
            finish_data[constants.RALLY_REQUEST_ID_KEY] = rally_request_id

        self._finish_event(event, finish_data)

    def send_all_remaining_events(self):
        # type: () -> None
        """Make the sender send every event it still buffers."""
        self.sender.flush()

    def get_component_type(self, component):
        # type: (t.Any) -> t.Optional[str]
        if component is None:
            return None
        return self.handlers.get_component_type(component)

    def _get_relative_time(self, timestamp=None):
        # type: (t.Optional[int]) -> int
        """Convert an absolute timestamp in milliseconds, now if omitted, to session relative time."""
        return (timestamp or _now_ms()) - self._starting_time

    def _start_event(self, event):
        # type: (Event) -> Event
        event.browser_timestamp = _now_ms()
        event.tab_id = self._browser_tab_id

        if event.start is None:
            event.start = self._get_relative_time()

        component = event.component
        if component is not None:
            app_name = self.handlers.get_app_name(component)
            if app_name:
                event.app_name = app_name

        self._pending_events.append(event)
        return event

    def _finish_event(self, event, finish_data):
        # type: (Event, t.Dict[str, t.Any]) -> None
        """Remove ``event`` from the pending events and hand it to the sender.

        ``finish_data`` only fills the fields the event does not have yet.
        """
        finish_data = dict(finish_data)
        finish_data.setdefault(constants.STOP_KEY, self._get_relative_time())

        record = event.to_dict(finish_data, self._default_params)

        try:
            self._pending_events.remove(event)
        except ValueError:
            pass

        self.sender.send(record)

    def _find_pending_event(self, event_id):
        # type: (t.Optional[str]) -> t.Optional[Event]
        if event_id is None:
            return None
        for event in self._pending_events:
            if event.event_id == event_id:
                return event
        return None

    def _conclude_pending_events(self, status):
        # type: (str) -> None
        finish_data = {constants.STATUS_KEY: status, constants.STOP_KEY: self._get_relative_time()}
        for event in list(self._pending_events):
            self._finish_event(event, finish_data)

    def _find_parent_id(self, component, trace_id):
        # type: (t.Any, str) -> str
        """Return the id of the event ``component`` descends from.

        The hierarchy is scanned in the order the handlers return it. For each
        ancestor, the most recent pending event of the trace that belongs to the
        ancestor or to ``component`` itself wins. Data requests are never
        parents. Defaults to the trace id.
        """
        hierarchy = self.handlers.get_component_hierarchy(component) or []

        for ancestor in hierarchy:
            for event in reversed(self._pending_events):
                if event.event_type == constants.DATA_REQUEST or event.trace_id != trace_id:
                    continue
                if self._is_owned_by(event, ancestor, component):
                    return event.event_id
        return trace_id

    def _is_owned_by(self, event, *components):
        # type: (Event, t.Any) -> bool
        owner = event.component
        if owner is not None:
            return any(owner is c for c in components)
        if event.component_key is None:
            return False
        return any(self._components.stable_key(c) == event.component_key for c in components)

    def _get_component_id(self, component):
        # type: (t.Any) -> t.Optional[str]
        if component is None:
            return None
        state = self._components.get(component)
        if not state.component_id:
            state.component_id = self._new_id()
        return state.component_id

    def _get_hierarchy_string(self, component):
        # type: (t.Any) -> t.Optional[str]
        if component is None:
            return None
        hierarchy = self.handlers.get_component_hierarchy(component)
        if not hierarchy:
            return constants.UNKNOWN_HIERARCHY

        names = [self.get_component_type(c) for c in hierarchy]
        return ":".join(name for name in names if name)

    @staticmethod
    def _get_url(url):
        # type: (t.Optional[str]) -> str
        return shorten_url(url)
