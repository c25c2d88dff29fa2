"""I18n backend serving blurbs from the Copycopter cache."""

from typing import Any, List, Optional

from copycopter_client.logging import get_logger
from copycopter_client.protocols import Poller

_logger = get_logger("backend")

DEFAULT_LOOKUP_TIMEOUT = 1.0


def missing_translation(locale: str, key: str) -> str:
    """Marker returned when a blurb is missing and no fallback was given."""
    return f"translation missing: {locale}.{key}"


class I18nBackend:
    """Lookup adapter installed into :mod:`copycopter_client.i18n`.

    A lookup reads the cache first. On a miss it asks the sync for an
    immediate refresh, waiting no longer than ``lookup_timeout``, and
    reads again, falling back to the blurbs of the most recent download
    when caching is disabled. Missing blurbs resolve to the caller's
    fallback, which is also queued for upload so it shows up in
    Copycopter as a draft.

    Args:
        sync: Poller providing the refresh path and upload queue.
        cache: Cache populated by ``sync``.
        lookup_timeout: Upper bound in seconds on the refresh wait.

    Example:
        >>> backend = I18nBackend(sync, cache)
        >>> backend.translate("greeting", "en", "Hello")
        'Hello'
    """

    def __init__(
        self,
        sync: Poller,
        cache: Any,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
    ):
        self._sync = sync
        self._cache = cache
        self._lookup_timeout = lookup_timeout

    @property
    def sync(self) -> Poller:
        return self._sync

    @property
    def cache(self) -> Any:
        return self._cache

    @property
    def lookup_timeout(self) -> float:
        return self._lookup_timeout

    def translate(
        self, key: str, locale: str, fallback: Optional[str] = None
    ) -> Any:
        """Resolve a blurb.

        Args:
            key: Blurb key, without the locale prefix.
            locale: Locale code, e.g. ``"en"``.
            fallback: Value returned, and queued for upload, when the
                blurb does not exist.

        Returns:
            The blurb, ``fallback``, or a missing marker. Never raises
            for a missing blurb.
        """
        candidates = self._candidate_keys(key, locale)

        value = self._read_cache(candidates)
        if value is not None:
            return value

        self._sync.refresh_now(timeout=self._lookup_timeout)

        value = self._read_cache(candidates)
        if value is None:
            value = self._read_sync(candidates)
        if value is not None:
            return value

        if fallback is not None:
            self._sync.queue_default(candidates[0], fallback)
            return fallback
        _logger.debug("Missing blurb %s.%s", locale, key)
        return missing_translation(locale, key)

    def available_locales(self) -> List[str]:
        """Locales with at least one cached blurb."""
        locales = set()
        for cached_key in self._cache.keys():
            if "." in cached_key:
                locales.add(cached_key.split(".", 1)[0])
        return sorted(locales)

    @staticmethod
    def _candidate_keys(key: str, locale: str) -> List[str]:
        if locale:
            return [f"{locale}.{key}", key]
        return [key]

    def _read_cache(self, keys: List[str]) -> Optional[Any]:
        for cache_key in keys:
            value = self._cache.get(cache_key)
            if value is not None:
                return value
        return None

    def _read_sync(self, keys: List[str]) -> Optional[Any]:
        for cache_key in keys:
            value = self._sync.lookup(cache_key)
            if value is not None:
                return value
        return None
