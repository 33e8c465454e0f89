from clientmetrics import constants
from clientmetrics.settings import ClientMetricsConfig
from tests.utils import override_env


def test_defaults():
    with override_env({}):
        config = ClientMetricsConfig()

    assert config.beacon_url == constants.DEFAULT_BEACON_URL
    assert config.flush_interval is None
    assert config.error_limit == 25
    assert config.min_number_of_events == 25
    assert config.max_length == 60000
    assert config.sync_mode is False


def test_environment_overrides():
    env = dict(
        CLIENTMETRICS_BEACON_URL="http://collector/beacon/",
        CLIENTMETRICS_FLUSH_INTERVAL="5000",
        CLIENTMETRICS_ERROR_LIMIT="5",
        CLIENTMETRICS_MAX_LENGTH="2000",
        CLIENTMETRICS_TRANSPORT_TIMEOUT="0.5",
        CLIENTMETRICS_SYNC_MODE="true",
    )
    with override_env(env):
        config = ClientMetricsConfig()

    assert config.beacon_url == "http://collector/beacon/"
    assert config.flush_interval == 5000
    assert config.error_limit == 5
    assert config.max_length == 2000
    assert config.transport_timeout == 0.5
    assert config.sync_mode is True
