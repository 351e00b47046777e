"""Background work on named, process-wide thread pools."""
import atexit
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

from imagecatalog.config import config

logger = logging.getLogger(__name__)

_EXECUTORS = {}
_EXECUTOR_LOCK = threading.Lock()


def _pool(name, max_workers):
    with _EXECUTOR_LOCK:
        if name not in _EXECUTORS:
            _EXECUTORS[name] = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix=f"imagecatalog-{name}"
            )
        return _EXECUTORS[name]


def get_executor():
    """Return the process-wide executor for harvests and sub-index builds."""
    return _pool("background", config.max_workers)


def get_discovery_executor():
    """
    Return the pool reserved for discovery cache builds.

    Discovery callers block until their build is ready, so builds must not
    queue behind long-running harvests on the background pool.
    """
    return _pool("discovery", config.discovery_workers)


def shutdown(wait=True):
    with _EXECUTOR_LOCK:
        executors = list(_EXECUTORS.values())
        _EXECUTORS.clear()
    for executor in executors:
        executor.shutdown(wait=wait)


def _log_failure(name):
    def callback(future):
        error = future.exception()
        if error is not None:
            logger.error("Background task %s failed: %s", name, error, exc_info=error)

    return callback


def submit(fn, *args, executor=None, name=None, **kwargs):
    """
    Run fn in the background.

    Failures are logged when the task finishes; the future is returned so
    callers can still wait on it.
    """
    executor = executor or get_executor()
    future = executor.submit(fn, *args, **kwargs)
    future.add_done_callback(_log_failure(name or getattr(fn, "__name__", "task")))
    return future


def run_all(fn, items, max_workers=None):
    """
    Apply fn to every item in parallel.

    Yields:
        Tuples of (item, result, error) as calls complete
    """
    with ThreadPoolExecutor(max_workers=max_workers or config.max_workers) as executor:
        futures = {executor.submit(fn, item): item for item in items}
        for future in as_completed(futures):
            item = futures[future]
            error = future.exception()
            yield (item, None if error else future.result(), error)


atexit.register(shutdown, False)
