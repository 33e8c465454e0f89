import hypothesis
import pytest

from clientmetrics import Aggregator
from tests.utils import Component
from tests.utils import ComponentTreeHandler
from tests.utils import RecordingSender
from tests.utils import SequentialIds


# Disable the "too slow" health checks. We are ok if data generation is slow
hypothesis.settings.register_profile("default", suppress_health_check=(hypothesis.HealthCheck.too_slow,))
hypothesis.settings.load_profile("default")


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def aggregator(sender):
    agg = Aggregator(sender=sender, handlers=[ComponentTreeHandler()], id_generator=SequentialIds())
    yield agg
    agg.destroy()


@pytest.fixture
def tree():
    """root > board > (grid, chart)"""
    root = Component("Root", app_name="Kanban")
    board = Component("Board", parent=root)
    grid = Component("Grid", parent=board)
    chart = Component("Chart", parent=board)
    return dict(root=root, board=board, grid=grid, chart=chart)
