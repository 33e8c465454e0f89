"""
Bookkeeping attached to externally owned UI components.

Components are opaque objects owned by the UI toolkit. Instead of setting
hidden attributes on them, the state the aggregator needs for a component
lives in a side-table keyed by ``id(component)`` and guarded by a weak
reference, so an entry disappears together with its component.

Components that do not support weak references are never held. They are
tracked under the stable key given by ``key_func`` when there is one, and not
tracked at all otherwise.
"""
import typing as t
import weakref

import attr

from clientmetrics.internal.logger import get_logger


log = get_logger(__name__)


def component_ref(component, callback=None):
    # type: (t.Any, t.Optional[t.Callable[[t.Any], None]]) -> t.Optional[weakref.ref]
    """Return a weak reference to ``component``, ``None`` if it does not support them."""
    try:
        return weakref.ref(component, callback)
    except TypeError:
        return None


@attr.s(slots=True)
class ComponentState(object):
    component_id = attr.ib(type=t.Optional[str], default=None)
    # id of the load event in flight for the component
    load_event_id = attr.ib(type=t.Optional[str], default=None)
    # request id -> id of the dataRequest event in flight
    data_request_event_ids = attr.ib(factory=dict, type=t.Dict[str, str])
    # number of the last session in which a load of the component completed
    loaded_session = attr.ib(type=t.Optional[int], default=None)


class ComponentRegistry(object):
    """Side-table of :class:`ComponentState` keyed by component identity.

    :param key_func: returns a stable, hashable key for a component, or ``None``.
        Only consulted for components that do not support weak references.
    """

    def __init__(self, key_func=None):
        # type: (t.Optional[t.Callable[[t.Any], t.Optional[t.Hashable]]]) -> None
        self._key_func = key_func
        self._states = {}  # type: t.Dict[int, ComponentState]
        self._refs = {}  # type: t.Dict[int, weakref.ref]
        self._keyed_states = {}  # type: t.Dict[t.Hashable, ComponentState]

    def __len__(self):
        return len(self._states) + len(self._keyed_states)

    def __contains__(self, component):
        return self._lookup(component) is not None

    def stable_key(self, component):
        # type: (t.Any) -> t.Optional[t.Hashable]
        if self._key_func is None:
            return None
        return self._key_func(component)

    def _lookup(self, component):
        # type: (t.Any) -> t.Optional[ComponentState]
        key = id(component)
        ref = self._refs.get(key)
        if ref is not None and ref() is component:
            return self._states[key]
        if self._keyed_states and component_ref(component) is None:
            stable_key = self.stable_key(component)
            if stable_key is not None:
                return self._keyed_states.get(stable_key)
        return None

    def get(self, component):
        # type: (t.Any) -> ComponentState
        """Return the state of ``component``, creating it on first use.

        The state of an untracked component is a fresh one on every call.
        """
        state = self._lookup(component)
        if state is not None:
            return state

        key = id(component)

        def _forget(ref, key=key):
            # only drop the entry if it still belongs to the collected component
            if self._refs.get(key) is ref:
                del self._refs[key]
                self._states.pop(key, None)

        ref = component_ref(component, _forget)
        if ref is not None:
            self._refs[key] = ref
            state = self._states[key] = ComponentState()
            return state

        stable_key = self.stable_key(component)
        if stable_key is not None:
            state = self._keyed_states[stable_key] = ComponentState()
            return state

        log.debug("%s supports neither weak references nor a component key, not tracking it", type(component).__name__)
        return ComponentState()

    def peek(self, component):
        # type: (t.Any) -> t.Optional[ComponentState]
        """Return the state of ``component`` without creating it."""
        return self._lookup(component)
