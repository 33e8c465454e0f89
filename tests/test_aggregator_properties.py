from hypothesis import given
from hypothesis import strategies as st

from clientmetrics import Aggregator
from tests.utils import Component
from tests.utils import ComponentTreeHandler
from tests.utils import RecordingSender
from tests.utils import SequentialIds


def _build_tree():
    root = Component("Root")
    left = Component("Left", parent=root)
    right = Component("Right", parent=root)
    return [
        root,
        left,
        right,
        Component("LeftA", parent=left),
        Component("LeftB", parent=left),
        Component("RightA", parent=right),
    ]


operations = st.lists(
    st.tuples(st.sampled_from(["begin", "end"]), st.integers(min_value=0, max_value=5)),
    max_size=40,
)


@given(operations)
def test_interleaved_loads_are_correlated(ops):
    components = _build_tree()
    handler = ComponentTreeHandler()
    sender = RecordingSender()
    agg = Aggregator(sender=sender, handlers=[handler], id_generator=SequentialIds())
    trace_id = agg.record_action(component=components[0])

    # model: component index -> seq of its in flight load
    in_flight = {}
    # seq -> (component index, seq of the expected parent load or None)
    expected = {}
    ended = set()

    for op, index in ops:
        component = components[index]
        if op == "begin":
            if index in in_flight:
                agg.begin_load(component, misc_data={"seq": -1})
                continue
            parent_seq = None
            for ancestor in handler.get_component_hierarchy(component):
                ancestor_index = components.index(ancestor)
                if ancestor_index in in_flight:
                    parent_seq = in_flight[ancestor_index]
                    break
            seq = len(expected)
            expected[seq] = (index, parent_seq)
            in_flight[index] = seq
            agg.begin_load(component, misc_data={"seq": seq})
        else:
            seq = in_flight.pop(index, None)
            agg.end_load(component)
            if seq is not None:
                ended.add(seq)

    agg.start_session("Navigation")

    loads = sender.of_type("load")
    by_seq = {load["seq"]: load for load in loads}

    # duplicate begins never produce an event, every accepted begin produces exactly one
    assert len(loads) == len(expected)
    assert set(by_seq) == set(expected)

    for seq, (index, parent_seq) in expected.items():
        load = by_seq[seq]
        assert load["tId"] == trace_id
        assert load["cmpType"] == components[index].type_name
        if parent_seq is None:
            assert load["pId"] == trace_id
        else:
            assert load["pId"] == by_seq[parent_seq]["eId"]
        assert load["status"] == ("Ready" if seq in ended else "Navigation")

    assert len({load["eId"] for load in loads}) == len(loads)
