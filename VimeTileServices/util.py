import time
import logging
import contextlib
from datetime import timedelta


@contextlib.contextmanager
def Timer(msg=None, logger=None):
    """
    Context manager that measures the elapsed time of its body.
    If msg is given, log it before and after (with the elapsed time).

    Usage:

        >>> with Timer("Fetching stack info", logger) as timer:
        ...     do_something()
        >>> print(timer.seconds)
    """
    if msg:
        logger = logger or logging.getLogger(__name__)
        logger.info(msg + '...')
    result = _TimerResult()
    start = time.time()
    yield result
    result.seconds = time.time() - start
    result.timedelta = timedelta(seconds=result.seconds)
    if msg:
        logger.info(msg + f' took {result.timedelta}')

class _TimerResult(object):
    seconds = -1.0
    timedelta = None
