import typing as t

from envier import En

from clientmetrics import constants


class ClientMetricsConfig(En):
    __prefix__ = "clientmetrics"

    beacon_url = En.v(
        str,
        "beacon_url",
        default=constants.DEFAULT_BEACON_URL,
        help_type="URL",
        help="URL of the beacon that collects the event batches",
    )

    flush_interval = En.v(
        t.Optional[int],
        "flush_interval",
        default=None,
        help_type="Integer",
        help="If set, pending batches are sent at least every that many milliseconds",
    )

    error_limit = En.v(
        int,
        "error_limit",
        default=constants.DEFAULT_ERROR_LIMIT,
        help_type="Integer",
        help="Maximum number of errors recorded per session",
    )

    min_number_of_events = En.v(
        int,
        "min_number_of_events",
        default=constants.DEFAULT_MIN_NUMBER_OF_EVENTS,
        help_type="Integer",
        help="Number of buffered events that triggers a flush of the batch sender",
    )

    max_length = En.v(
        int,
        "max_length",
        default=constants.DEFAULT_MAX_LENGTH,
        help_type="Integer",
        help="Maximum size in bytes of an encoded batch",
    )

    transport_timeout = En.v(
        float,
        "transport_timeout",
        default=2.0,
        help_type="Float",
        help="Timeout in seconds of a request to the beacon",
    )

    transport_interval = En.v(
        float,
        "transport_interval",
        default=1.0,
        help_type="Float",
        help="Interval in seconds between two runs of the background transport worker",
    )

    sync_mode = En.v(
        bool,
        "sync_mode",
        default=False,
        help_type="Boolean",
        help="Send batches on the calling thread instead of a background worker",
    )


config = ClientMetricsConfig()
