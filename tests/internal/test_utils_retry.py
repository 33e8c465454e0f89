from itertools import count

import mock
import pytest

from clientmetrics.internal.utils.retry import RetryError
from clientmetrics.internal.utils.retry import fibonacci_backoff_with_jitter
from clientmetrics.internal.utils.retry import retry


class BeaconUnavailable(Exception):
    pass


@pytest.fixture
def sleep():
    with mock.patch("clientmetrics.internal.utils.retry.sleep") as sleep:
        yield sleep


def test_retry_until_no_exception(sleep):
    attempts = count()

    @retry(0.5)
    def post():
        if next(attempts) < 2:
            raise BeaconUnavailable()

    assert post() is None
    assert next(attempts) == 3
    assert sleep.call_args_list == [mock.call(0), mock.call(0.5), mock.call(0.5)]


def test_retry_until_predicate(sleep):
    statuses = iter([503, 502, 202])

    @retry(0, until=lambda status: status < 400)
    def post():
        return next(statuses)

    assert post() == 202


def test_retry_gives_up_with_last_result(sleep):
    attempts = count()

    @retry(after=[0, 0, 0])
    def post():
        return next(attempts)

    with pytest.raises(RetryError) as e:
        post()

    assert e.value.args[0] == 3


def test_retry_reraises_last_exception(sleep):
    attempts = count()

    @retry(after=[0, 0])
    def post():
        raise BeaconUnavailable(next(attempts))

    with pytest.raises(BeaconUnavailable) as e:
        post()

    assert e.value.args[0] == 2


def test_fibonacci_backoff_with_jitter(sleep):
    attempts = count()

    @fibonacci_backoff_with_jitter(4, initial_wait=1.0)
    def post(failures):
        k = next(attempts)
        if k < failures:
            raise BeaconUnavailable(k)

    assert post(2) is None
    # the initial wait, then one jittered wait per failed attempt
    waits = [c[0][0] for c in sleep.call_args_list[1:]]
    assert len(waits) == 2
    for i, wait in enumerate(waits):
        assert 0 <= wait <= 1.618**i

    attempts = count()
    with pytest.raises(BeaconUnavailable) as e:
        post(10)
    assert e.value.args[0] == 3
