import pytest

from clientmetrics.handlers import ComponentHandler
from clientmetrics.handlers import HandlerRegistry
from tests.utils import Component
from tests.utils import ComponentTreeHandler


class StaticHandler(ComponentHandler):
    def __init__(self, component_type=None, hierarchy=None, app_name=None):
        self.component_type = component_type
        self.hierarchy = hierarchy
        self.app_name = app_name

    def get_component_type(self, component):
        return self.component_type

    def get_component_hierarchy(self, component):
        return self.hierarchy

    def get_app_name(self, component):
        return self.app_name


class BrokenHandler(StaticHandler):
    def get_component_type(self, component):
        raise AttributeError("no type")


def test_handler_interface_is_abstract():
    with pytest.raises(TypeError):
        ComponentHandler()


def test_first_truthy_answer_wins():
    registry = HandlerRegistry(
        [StaticHandler(), StaticHandler("", app_name="first"), StaticHandler("Grid", app_name="second")]
    )

    assert registry.get_component_type(object()) == "Grid"
    assert registry.get_app_name(object()) == "first"


def test_no_answer():
    registry = HandlerRegistry([StaticHandler(), StaticHandler(hierarchy=[])])

    assert registry.get_component_type(object()) is None
    assert registry.get_component_hierarchy(object()) is None
    assert registry.get_app_name(object()) is None


def test_empty_registry():
    registry = HandlerRegistry()
    assert len(registry) == 0
    assert registry.get_component_type(object()) is None


def test_failing_handler_is_skipped():
    registry = HandlerRegistry([BrokenHandler(), StaticHandler("Grid")])
    assert registry.get_component_type(object()) == "Grid"


def test_register_and_unregister():
    registry = HandlerRegistry()
    handler = StaticHandler("Grid")
    registry.register(handler)
    assert len(registry) == 1
    assert registry.get_component_type(object()) == "Grid"

    registry.unregister(handler)
    assert registry.get_component_type(object()) is None
    with pytest.raises(ValueError):
        registry.unregister(handler)


def test_duck_typed_handlers():
    class Handler(object):
        def get_component_type(self, component):
            return "Duck"

        def get_component_hierarchy(self, component):
            return [component]

        def get_app_name(self, component):
            return None

    registry = HandlerRegistry([Handler()])
    cmp = object()
    assert registry.get_component_type(cmp) == "Duck"
    assert registry.get_component_hierarchy(cmp) == [cmp]


def test_component_tree_handler():
    root = Component("Root", app_name="App")
    child = Component("Child", parent=root)
    registry = HandlerRegistry([ComponentTreeHandler()])

    assert registry.get_component_hierarchy(child) == [child, root]
    assert registry.get_app_name(child) == "App"


def test_component_key_is_optional():
    class KeyHandler(StaticHandler):
        def get_component_key(self, component):
            return component.get("id")

    class Duck(object):
        def get_component_type(self, component):
            return "Duck"

    registry = HandlerRegistry([StaticHandler("Grid"), Duck(), KeyHandler()])

    assert StaticHandler().get_component_key({"id": "grid-1"}) is None
    assert registry.get_component_key({"id": "grid-1"}) == "grid-1"
    assert HandlerRegistry([Duck()]).get_component_key({"id": "grid-1"}) is None
