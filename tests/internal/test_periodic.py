import threading

import pytest

from clientmetrics.internal import periodic
from clientmetrics.internal import service


def test_periodic():
    x = {"OK": False}

    thread_started = threading.Event()
    thread_continue = threading.Event()

    def _run_periodic():
        thread_started.set()
        x["OK"] = True
        thread_continue.wait()

    def _on_shutdown():
        x["DOWN"] = True

    t = periodic.PeriodicThread(0.001, _run_periodic, on_shutdown=_on_shutdown)
    t.start()
    thread_started.wait()
    thread_continue.set()
    assert t.is_alive()
    t.stop()
    t.join()
    assert not t.is_alive()
    assert x["OK"]
    assert x["DOWN"]


def test_periodic_error_does_not_kill_the_thread():
    calls = []
    called_twice = threading.Event()

    def _run_periodic():
        calls.append(1)
        if len(calls) >= 2:
            called_twice.set()
        raise ValueError

    t = periodic.PeriodicThread(0.001, _run_periodic)
    t.start()
    assert called_twice.wait(5)
    t.stop()
    t.join()


def test_periodic_service_start_stop():
    periodic_called = threading.Event()
    shutdown = threading.Event()

    class P(periodic.PeriodicService):
        def periodic(self):
            periodic_called.set()

        def on_shutdown(self):
            shutdown.set()

    p = P(0.001)
    p.start()
    assert p.status == service.ServiceStatus.RUNNING
    assert periodic_called.wait(5)
    p.stop()
    p.join()
    assert p.status == service.ServiceStatus.STOPPED
    assert shutdown.is_set()


def test_periodic_service_double_start():
    p = periodic.PeriodicService(0.1)
    p.start()
    try:
        with pytest.raises(service.ServiceStatusError):
            p.start()
    finally:
        p.stop()
        p.join()


def test_periodic_service_interval_update():
    p = periodic.PeriodicService(10)
    p.start()
    try:
        p.interval = 5
        assert p._worker.interval == 5
    finally:
        p.stop()
        p.join()


def test_service_stop_when_stopped_is_noop():
    s = service.Service()
    s.stop()
    assert s.status == service.ServiceStatus.STOPPED


def test_service_context_manager():
    with service.Service() as s:
        assert s.status == service.ServiceStatus.RUNNING
    assert s.status == service.ServiceStatus.STOPPED
