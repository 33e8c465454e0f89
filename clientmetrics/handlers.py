"""
Handlers translate opaque UI components into the metadata the aggregator records.

clientmetrics knows nothing about UI toolkits. Each toolkit integration
provides a :class:`ComponentHandler`; the aggregator asks every registered
handler in order and keeps the first truthy answer::

    class WidgetHandler(ComponentHandler):
        def get_component_type(self, component):
            return type(component).__name__ if isinstance(component, Widget) else None

        def get_component_hierarchy(self, component):
            if not isinstance(component, Widget):
                return None
            chain = [component]
            while chain[-1].parent is not None:
                chain.append(chain[-1].parent)
            return chain

        def get_app_name(self, component):
            return getattr(component, "app_name", None)

Components that do not support weak references, such as plain dicts, are
only tracked between calls when a handler gives them a key with
``get_component_key``.
"""
import abc
import typing as t

from clientmetrics.internal.logger import get_logger


log = get_logger(__name__)


class ComponentHandler(metaclass=abc.ABCMeta):
    """Capability interface over a UI toolkit's components.

    Every method returns a falsy value when the handler does not know the component.
    """

    @abc.abstractmethod
    def get_component_type(self, component):
        # type: (t.Any) -> t.Optional[str]
        pass

    @abc.abstractmethod
    def get_component_hierarchy(self, component):
        # type: (t.Any) -> t.Optional[t.Sequence[t.Any]]
        """Return the components of the hierarchy of ``component``.

        The aggregator scans the sequence in the order it is returned.
        """

    @abc.abstractmethod
    def get_app_name(self, component):
        # type: (t.Any) -> t.Optional[str]
        pass

    def get_component_key(self, component):
        # type: (t.Any) -> t.Optional[t.Hashable]
        """Return a stable, hashable key identifying ``component``.

        Only asked for components that do not support weak references, which
        are otherwise not tracked between calls. Keys must stay the same for
        the life of the component and differ between components.
        """
        return None


class HandlerRegistry(object):
    """Ordered handlers queried until one gives a truthy answer."""

    def __init__(self, handlers=None):
        # type: (t.Optional[t.Iterable[ComponentHandler]]) -> None
        self._handlers = list(handlers or [])  # type: t.List[ComponentHandler]

    def __len__(self):
        return len(self._handlers)

    def register(self, handler):
        # type: (ComponentHandler) -> None
        self._handlers.append(handler)

    def unregister(self, handler):
        # type: (ComponentHandler) -> None
        """Remove ``handler``.

        Raises `ValueError` if the handler was not registered.
        """
        self._handlers.remove(handler)

    def _resolve(self, component, method_name):
        # type: (t.Any, str) -> t.Any
        for handler in self._handlers:
            method = getattr(handler, method_name, None)
            if method is None:
                continue
            try:
                result = method(component)
            except Exception:
                log.debug("handler %r failed to resolve %s", handler, method_name, exc_info=True)
                continue
            if result:
                return result
        return None

    def get_component_type(self, component):
        # type: (t.Any) -> t.Optional[str]
        return self._resolve(component, "get_component_type")

    def get_component_hierarchy(self, component):
        # type: (t.Any) -> t.Optional[t.Sequence[t.Any]]
        return self._resolve(component, "get_component_hierarchy")

    def get_app_name(self, component):
        # type: (t.Any) -> t.Optional[str]
        return self._resolve(component, "get_app_name")

    def get_component_key(self, component):
        # type: (t.Any) -> t.Optional[t.Hashable]
        return self._resolve(component, "get_component_key")
