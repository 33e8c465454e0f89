from functools import wraps
from itertools import repeat
import random
from time import sleep
import typing as t


class RetryError(Exception):
    pass


def retry(
    after,  # type: t.Union[int, float, t.Iterable[t.Union[int, float]]]
    until=lambda result: result is None,  # type: t.Callable[[t.Any], bool]
    initial_wait=0,  # type: float
):
    # type: (...) -> t.Callable
    """Call the decorated function until ``until`` accepts its result.

    ``after`` gives the waits between attempts, one more attempt is made once
    it is exhausted. The last exception raised by the function is re-raised
    when no attempt succeeds, `RetryError` with the last result otherwise.
    """

    def retry_decorator(f):
        @wraps(f)
        def retry_wrapped(*args, **kwargs):
            sleep(initial_wait)
            after_iter = repeat(after) if isinstance(after, (int, float)) else after
            exception = None

            for s in after_iter:
                try:
                    result = f(*args, **kwargs)
                except Exception as e:
                    exception = e
                    result = e

                if until(result):
                    return result

                sleep(s)

            # Last chance to succeed
            try:
                result = f(*args, **kwargs)
            except Exception as e:
                exception = e
                result = e

            if until(result):
                return result

            if exception is not None:
                raise exception

            raise RetryError(result)

        return retry_wrapped

    return retry_decorator


def fibonacci_backoff_with_jitter(attempts, initial_wait=1.0, until=lambda result: result is None):
    # type: (int, float, t.Callable[[t.Any], bool]) -> t.Callable
    return retry(
        after=[random.uniform(0, initial_wait * (1.618**i)) for i in range(attempts - 1)],  # nosec
        until=until,
    )
