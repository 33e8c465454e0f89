import contextlib
import os

from clientmetrics.handlers import ComponentHandler


class Component(object):
    """A UI component of a toy toolkit."""

    def __init__(self, type_name, parent=None, app_name=None):
        self.type_name = type_name
        self.parent = parent
        self.app_name = app_name

    def __repr__(self):
        return "Component(%r)" % self.type_name


class ComponentTreeHandler(ComponentHandler):
    """Handler for :class:`Component`: hierarchy from the component itself up to the root."""

    def get_component_type(self, component):
        if isinstance(component, Component):
            return component.type_name
        return None

    def get_component_hierarchy(self, component):
        if not isinstance(component, Component):
            return None
        hierarchy = []
        while component is not None:
            hierarchy.append(component)
            component = component.parent
        return hierarchy

    def get_app_name(self, component):
        while component is not None:
            if getattr(component, "app_name", None):
                return component.app_name
            component = getattr(component, "parent", None)
        return None


class RecordingSender(object):
    """Sender keeping every event it receives, grouped in flushed batches."""

    def __init__(self, max_length=None):
        self.max_length = max_length
        self.events = []
        self.batches = []
        self._batch = []
        self.flush_count = 0

    def send(self, event):
        self.events.append(event)
        self._batch.append(event)

    def flush(self):
        self.flush_count += 1
        if self._batch:
            self.batches.append(self._batch)
            self._batch = []

    def get_max_length(self):
        return self.max_length

    def of_type(self, event_type):
        return [e for e in self.events if e["eType"] == event_type]


class SequentialIds(object):
    def __init__(self, prefix="id"):
        self.prefix = prefix
        self.count = 0

    def __call__(self):
        self.count += 1
        return "%s-%d" % (self.prefix, self.count)


@contextlib.contextmanager
def override_env(env):
    """
    Temporarily override ``os.environ`` with provided values::

        >>> with override_env(dict(CLIENTMETRICS_ERROR_LIMIT="5")):
            # Your test
    """
    original = dict(os.environ)
    os.environ.update(env)
    try:
        yield
    finally:
        os.environ.clear()
        os.environ.update(original)
