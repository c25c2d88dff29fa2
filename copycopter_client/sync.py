"""Background synchronization of blurbs from the Copycopter server.

:class:`Sync` owns a daemon thread that downloads blurbs every
``polling_delay`` seconds and merges them into the local cache. Failed
downloads never stop the loop; they increase the delay before the next
attempt up to a bounded cap and reset once a download succeeds.

Downloads are serialized: the scheduled tick and the on-demand
:meth:`Sync.refresh_now` path share a single fetch lock, so at most
one request is in flight per :class:`Sync` instance.

Example:
    >>> sync = Sync(Client(options), options, cache=create_cache(options))
    >>> sync.start()
    >>> ...
    >>> sync.stop()
"""

import atexit
import concurrent.futures
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from copycopter_client.cache import create_cache
from copycopter_client.exceptions import ConfigurationException, CopycopterException
from copycopter_client.logging import get_logger
from copycopter_client.protocols import Fetcher

_logger = get_logger("sync")

DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_BACKOFF_FACTOR = 8.0


class BackoffPolicy:
    """Bounded exponential backoff expressed in multiples of the polling delay.

    After ``n`` consecutive failures the next attempt is scheduled
    ``polling_delay * multiplier ** n`` seconds later, capped at
    ``polling_delay * max_factor``.
    """

    def __init__(
        self,
        multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_factor: float = DEFAULT_MAX_BACKOFF_FACTOR,
    ):
        self._multiplier = multiplier
        self._max_factor = max_factor
        self._validate()

    def _validate(self) -> None:
        if self._multiplier < 1.0:
            raise ConfigurationException("backoff_multiplier must be >= 1.0")
        if self._max_factor < 1.0:
            raise ConfigurationException("max_backoff_factor must be >= 1.0")

    @property
    def multiplier(self) -> float:
        return self._multiplier

    @property
    def max_factor(self) -> float:
        return self._max_factor

    def delay(self, polling_delay: float, failures: int) -> float:
        """Compute the wait before the next attempt.

        Args:
            polling_delay: The base interval in seconds.
            failures: Number of consecutive failed attempts.

        Returns:
            Delay in seconds, never below ``polling_delay`` and never
            above ``polling_delay * max_factor``.
        """
        if failures <= 0:
            return polling_delay
        cap = polling_delay * self._max_factor
        # Avoid overflowing the power for long outages.
        if failures > 64:
            return cap
        return min(polling_delay * self._multiplier ** failures, cap)


@dataclass
class SyncState:
    """Snapshot of a :class:`Sync` instance.

    Attributes:
        running: Whether the background loop is active.
        failure_count: Consecutive failed ticks since the last success.
        last_success: Unix timestamp of the last successful download.
        fetch_count: Total number of successful downloads.
        next_delay: Seconds the loop waits before its next tick.
    """

    running: bool = False
    failure_count: int = 0
    last_success: Optional[float] = None
    fetch_count: int = 0
    next_delay: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "failure_count": self.failure_count,
            "last_success": self.last_success,
            "fetch_count": self.fetch_count,
            "next_delay": self.next_delay,
        }


class Sync:
    """Cancellable poller that keeps the local cache in step with the server.

    Args:
        client: Transport used to download and upload blurbs.
        options: Configuration snapshot; ``polling_delay`` is required,
            ``backoff_multiplier`` and ``max_backoff_factor`` are optional.
        cache: Cache to write into. Built from ``options`` if omitted.
        backoff: Backoff policy overriding the one described by ``options``.

    Attributes:
        cache: The cache downloads are merged into.
        running: Whether the background loop is active.
        state: A :class:`SyncState` snapshot.
    """

    def __init__(
        self,
        client: Fetcher,
        options: Mapping[str, Any],
        cache: Any = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self._client = client
        self._polling_delay = float(options["polling_delay"])
        self._cache = cache if cache is not None else create_cache(options)
        self._backoff = backoff or BackoffPolicy(
            options.get("backoff_multiplier", DEFAULT_BACKOFF_MULTIPLIER),
            options.get("max_backoff_factor", DEFAULT_MAX_BACKOFF_FACTOR),
        )

        self._lock = threading.Lock()
        self._fetch_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stopped = False

        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._pending_refresh: Optional[concurrent.futures.Future] = None

        self._blurbs: Dict[str, Any] = {}
        self._pending_defaults: Dict[str, Any] = {}

        self._failure_count = 0
        self._last_success: Optional[float] = None
        self._fetch_count = 0

        self._failure_listeners: List[Tuple[str, Callable[[Exception], None]]] = []
        self._exit_hook_registered = False

    @property
    def client(self) -> Fetcher:
        return self._client

    @property
    def cache(self) -> Any:
        return self._cache

    @property
    def polling_delay(self) -> float:
        return self._polling_delay

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def last_success(self) -> Optional[float]:
        with self._lock:
            return self._last_success

    @property
    def pending_defaults(self) -> Dict[str, Any]:
        """Defaults waiting to be uploaded."""
        with self._lock:
            return dict(self._pending_defaults)

    @property
    def state(self) -> SyncState:
        with self._lock:
            return SyncState(
                running=self._running,
                failure_count=self._failure_count,
                last_success=self._last_success,
                fetch_count=self._fetch_count,
                next_delay=self._next_delay(),
            )

    def next_delay(self) -> float:
        """Seconds the loop will wait after the most recent tick."""
        with self._lock:
            return self._next_delay()

    def _next_delay(self) -> float:
        return self._backoff.delay(self._polling_delay, self._failure_count)

    def start(self) -> None:
        """Start the background polling loop.

        The first tick runs immediately. Does nothing if the loop is
        already running.
        """
        with self._lock:
            if self._running:
                return
            self._running = True
            self._stopped = False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._poll_loop,
                name="copycopter-sync",
                daemon=True,
            )
            thread = self._thread
            register_exit_hook = not self._exit_hook_registered
            self._exit_hook_registered = True

        if register_exit_hook:
            atexit.register(self._at_exit)
        thread.start()
        _logger.info("Started polling every %ss", self._polling_delay)

    def stop(self) -> None:
        """Stop the loop and wait for any in-flight download to finish.

        No cache writes happen after this returns, including from
        :meth:`refresh_now`. Safe to call multiple times. Also drops the
        exit hook registered by :meth:`start`.
        """
        self._halt()
        with self._lock:
            unregister_exit_hook = self._exit_hook_registered
            self._exit_hook_registered = False
        if unregister_exit_hook:
            atexit.unregister(self._at_exit)

    def _halt(self) -> None:
        with self._lock:
            was_running = self._running
            self._running = False
            self._stopped = True
            thread = self._thread
            self._thread = None
            executor = self._executor
            self._executor = None
            self._pending_refresh = None

        self._stop_event.set()

        if thread is not None and thread is not threading.current_thread():
            thread.join()
        if executor is not None:
            executor.shutdown(wait=False)

        # Wait for a refresh that already holds the fetch lock.
        with self._fetch_lock:
            pass

        if was_running:
            _logger.info("Stopped polling")

    def tick(self) -> bool:
        """Download once, merge the result into the cache and upload queued defaults.

        Download failures are counted, logged and reported to failure
        listeners; they are never raised. A failed upload is logged and
        reported but does not count against a successful download.

        Returns:
            True if the download succeeded.
        """
        return self._sync_once()

    def refresh_now(self, timeout: Optional[float] = None) -> bool:
        """Trigger an out-of-band download and wait for it.

        Concurrent callers share one pending refresh, and the refresh
        waits for a scheduled tick in progress rather than overlapping it.

        Args:
            timeout: Maximum seconds to wait; ``None`` waits until done.

        Returns:
            True if a download completed successfully within ``timeout``.
        """
        with self._lock:
            if self._stopped:
                return False
            future = self._pending_refresh
            if future is None or future.done():
                if self._executor is None:
                    self._executor = concurrent.futures.ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="copycopter-refresh"
                    )
                future = self._executor.submit(self._sync_once)
                self._pending_refresh = future

        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            _logger.debug("Refresh did not complete within %ss", timeout)
            return False

    def lookup(self, key: str) -> Optional[Any]:
        """Read a blurb from the most recent download, bypassing the cache."""
        with self._lock:
            return self._blurbs.get(key)

    def queue_default(self, key: str, value: Any) -> None:
        """Remember a default blurb to upload with the next tick.

        The first default queued for a key wins until it is uploaded.
        """
        with self._lock:
            self._pending_defaults.setdefault(key, value)

    def flush(self) -> bool:
        """Upload queued defaults now.

        Returns:
            True if there was nothing to upload or the upload succeeded.
        """
        with self._fetch_lock:
            try:
                self._flush_pending()
            except Exception as e:
                _logger.warning("Failed to upload default blurbs: %s", e)
                return False
        return True

    def add_failure_listener(self, listener: Callable[[Exception], None]) -> str:
        """Register a callback invoked with the error of each failed download or upload.

        Returns:
            Registration ID for removing the listener.
        """
        reg_id = str(uuid.uuid4())
        with self._lock:
            self._failure_listeners.append((reg_id, listener))
        return reg_id

    def remove_failure_listener(self, registration_id: str) -> bool:
        with self._lock:
            for i, (reg_id, _) in enumerate(self._failure_listeners):
                if reg_id == registration_id:
                    del self._failure_listeners[i]
                    return True
        return False

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self._sync_once()
            if self._stop_event.wait(self.next_delay()):
                break

    def _sync_once(self) -> bool:
        with self._fetch_lock:
            if self._is_stopped():
                return False
            try:
                payload = self._client.fetch()
                if self._is_stopped():
                    return False
                self._merge(payload)
            except Exception as e:
                self._record_failure(e)
                return False
            self._record_success()
            try:
                self._flush_pending()
            except Exception as e:
                _logger.warning("Failed to upload default blurbs: %s", e)
                self._notify_failure(e)
            return True

    def _is_stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _merge(self, payload: Mapping[str, Any]) -> None:
        blurbs = dict(payload)
        with self._lock:
            self._blurbs = blurbs
        self._cache.set_all(blurbs)
        self._cache.do_expiration()

    def _flush_pending(self) -> None:
        with self._lock:
            pending = self._pending_defaults
            self._pending_defaults = {}
        if not pending:
            return
        try:
            self._client.push(pending)
        except Exception:
            with self._lock:
                for key, value in pending.items():
                    self._pending_defaults.setdefault(key, value)
            raise

    def _record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._last_success = time.time()
            self._fetch_count += 1
            count = len(self._blurbs)
        _logger.debug("Synchronized %d blurbs", count)

    def _record_failure(self, error: Exception) -> None:
        with self._lock:
            self._failure_count += 1
            failures = self._failure_count
            delay = self._next_delay()

        if isinstance(error, CopycopterException):
            _logger.warning(
                "Sync failed (%d consecutive failures, retrying in %ss): %s",
                failures, delay, error,
            )
        else:
            _logger.exception(
                "Unexpected error during sync (%d consecutive failures, "
                "retrying in %ss)", failures, delay,
            )

        self._notify_failure(error)

    def _notify_failure(self, error: Exception) -> None:
        with self._lock:
            listeners = [listener for _, listener in self._failure_listeners]
        for listener in listeners:
            try:
                listener(error)
            except Exception:
                _logger.exception("Sync failure listener raised")

    def _at_exit(self) -> None:
        self._halt()
        self.flush()

    def __enter__(self) -> "Sync":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
