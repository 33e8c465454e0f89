from ._config import ClientMetricsConfig
from ._config import config


__all__ = ["ClientMetricsConfig", "config"]
