import re

from clientmetrics.internal.ids import new_id


UUID4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def test_new_id_is_a_version_4_uuid():
    assert UUID4.match(new_id())


def test_new_ids_are_unique():
    assert len({new_id() for _ in range(1000)}) == 1000
