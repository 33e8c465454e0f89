import typing as t

import attr

from clientmetrics import constants
from clientmetrics.internal.components import component_ref


# (wire key, attribute) pairs, in encoding order
_WIRE_FIELDS = (
    (constants.BROWSER_TIMESTAMP_KEY, "browser_timestamp"),
    (constants.TAB_ID_KEY, "tab_id"),
    (constants.TRACE_ID_KEY, "trace_id"),
    (constants.EVENT_ID_KEY, "event_id"),
    (constants.PARENT_ID_KEY, "parent_id"),
    (constants.EVENT_TYPE_KEY, "event_type"),
    (constants.EVENT_DESCRIPTION_KEY, "description"),
    (constants.COMPONENT_TYPE_KEY, "component_type"),
    (constants.COMPONENT_ID_KEY, "component_id"),
    (constants.COMPONENT_HIERARCHY_KEY, "hierarchy"),
    (constants.START_KEY, "start"),
    (constants.STOP_KEY, "stop"),
    (constants.STATUS_KEY, "status"),
    (constants.APP_NAME_KEY, "app_name"),
    (constants.URL_KEY, "url"),
    (constants.ERROR_KEY, "error"),
    (constants.FIRST_LOAD_KEY, "first"),
    (constants.RALLY_REQUEST_ID_KEY, "rally_request_id"),
)


@attr.s(eq=False, slots=True)
class Event(object):
    """A correlated occurrence: a user action, a component load, a data request or an error.

    Timestamps ``start`` and ``stop`` are milliseconds relative to the start of
    the aggregator, ``browser_timestamp`` is absolute milliseconds since the epoch.

    The owning component is only held through a weak reference and is never
    encoded.
    """

    event_type = attr.ib(type=str)
    event_id = attr.ib(type=str)
    trace_id = attr.ib(type=str)
    parent_id = attr.ib(type=t.Optional[str], default=None)
    _component_ref = attr.ib(default=None, repr=False)
    # stable key of an owning component that only supports being referenced by key
    component_key = attr.ib(default=None, repr=False)
    component_type = attr.ib(type=t.Optional[str], default=None)
    component_id = attr.ib(type=t.Optional[str], default=None)
    hierarchy = attr.ib(type=t.Optional[str], default=None)
    description = attr.ib(type=t.Optional[str], default=None)
    status = attr.ib(type=t.Optional[str], default=None)
    start = attr.ib(type=t.Optional[int], default=None)
    stop = attr.ib(type=t.Optional[int], default=None)
    browser_timestamp = attr.ib(type=t.Optional[int], default=None)
    tab_id = attr.ib(type=t.Optional[str], default=None)
    app_name = attr.ib(type=t.Optional[str], default=None)
    url = attr.ib(type=t.Optional[str], default=None)
    error = attr.ib(type=t.Optional[str], default=None)
    first = attr.ib(type=t.Optional[bool], default=None)
    rally_request_id = attr.ib(type=t.Optional[str], default=None)
    misc_data = attr.ib(factory=dict, type=t.Dict[str, t.Any], repr=False)

    @classmethod
    def create(cls, event_type, event_id, trace_id, component=None, key_func=None, **kwargs):
        # type: (str, str, str, t.Any, t.Optional[t.Callable[[t.Any], t.Any]], t.Any) -> Event
        """Build an event owned by ``component``.

        The component is referenced weakly. When it does not support weak
        references, only its key given by ``key_func`` is kept.
        """
        ref = key = None
        if component is not None:
            ref = component_ref(component)
            if ref is None and key_func is not None:
                key = key_func(component)
        return cls(event_type, event_id, trace_id, component_ref=ref, component_key=key, **kwargs)

    @property
    def component(self):
        # type: () -> t.Any
        """The owning component, or ``None`` if there is none or it has been collected."""
        if self._component_ref is None:
            return None
        return self._component_ref()

    def to_dict(self, finish_data=None, default_params=None):
        # type: (t.Optional[t.Mapping[str, t.Any]], t.Optional[t.Mapping[str, t.Any]]) -> t.Dict[str, t.Any]
        """Encode the event with its wire field names.

        Values already on the event win over ``misc_data``, which wins over
        ``finish_data``, which wins over ``default_params``.
        """
        d = {}  # type: t.Dict[str, t.Any]
        for key, name in _WIRE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                d[key] = value

        for source in (self.misc_data, finish_data, default_params):
            if not source:
                continue
            for key, value in source.items():
                if d.get(key) is None and value is not None:
                    d[key] = value
        return d
