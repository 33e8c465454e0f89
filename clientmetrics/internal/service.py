import enum
import threading

import attr


class ServiceStatus(enum.Enum):
    """A Service status."""

    STOPPED = "stopped"
    RUNNING = "running"


class ServiceStatusError(RuntimeError):
    def __init__(self, service_cls, current_status):
        # type: (type, ServiceStatus) -> None
        self.current_status = current_status
        super(ServiceStatusError, self).__init__(
            "%s is already in status %s" % (service_cls.__name__, current_status.value)
        )


@attr.s(eq=False)
class Service(object):
    """A service that can be started or stopped."""

    status = attr.ib(default=ServiceStatus.STOPPED, type=ServiceStatus, init=False, eq=False)
    _service_lock = attr.ib(factory=threading.Lock, repr=False, init=False, eq=False)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()
        self.join()

    def start(self):
        # type: () -> None
        """Start the service.

        :raises ServiceStatusError: if the service is already running.
        """
        # Two threads racing to start the service: exactly one of them raises.
        with self._service_lock:
            if self.status == ServiceStatus.RUNNING:
                raise ServiceStatusError(self.__class__, self.status)
            self._start_service()
            self.status = ServiceStatus.RUNNING

    def stop(self):
        # type: () -> None
        """Stop the service.

        Stopping a service that is not running is a no-op.
        """
        with self._service_lock:
            if self.status == ServiceStatus.STOPPED:
                return
            self._stop_service()
            self.status = ServiceStatus.STOPPED

    def _start_service(self):
        # type: () -> None
        pass

    def _stop_service(self):
        # type: () -> None
        pass

    def join(self, timeout=None):
        # type: (float) -> None
        """Join the service once stopped."""
