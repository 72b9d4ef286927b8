# prahestate/utils.py
"""Logging setup and the retry decorator used around catalog calls."""
import os
import logging
import time
from functools import wraps
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level, logging.INFO))
    return logging.getLogger(name)


logger = get_logger("prahestate-service")


def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    """Call the wrapped function up to `tries` times while it raises `exceptions`.

    Waits `delay` seconds after the first failure, multiplied by `backoff` after
    each further one. The final attempt's exception reaches the caller.
    """
    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            wait = delay
            for attempt in range(1, tries):
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("%s failed (attempt %d/%d): %s; retrying in %ss",
                                   f.__name__, attempt, tries, e, wait)
                    time.sleep(wait)
                    wait *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry
