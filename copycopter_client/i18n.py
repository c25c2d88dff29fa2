"""Process-wide i18n provider registry.

Applications translate through this module; the Copycopter
configuration installs its backend here when applied. Installing a
backend replaces the previous one (last writer wins), and
:func:`uninstall` removes it so tests can reset state.

Example:
    >>> from copycopter_client import i18n
    >>> i18n.install(backend)
    >>> i18n.translate("greeting", locale="en", default="Hello")
    'Hello'
    >>> i18n.uninstall()
"""

import threading
from typing import Any, Optional

from copycopter_client.backend import missing_translation
from copycopter_client.protocols import TranslationBackend

DEFAULT_LOCALE = "en"


class I18nRegistry:
    """Holds the active translation backend for the process.

    Args:
        default_locale: Locale used when ``translate`` is called without one.
    """

    def __init__(self, default_locale: str = DEFAULT_LOCALE):
        self._lock = threading.Lock()
        self._backend: Optional[TranslationBackend] = None
        self._default_locale = default_locale

    @property
    def backend(self) -> Optional[TranslationBackend]:
        with self._lock:
            return self._backend

    @property
    def default_locale(self) -> str:
        with self._lock:
            return self._default_locale

    @default_locale.setter
    def default_locale(self, value: str) -> None:
        with self._lock:
            self._default_locale = value

    def install(self, backend: TranslationBackend) -> Optional[TranslationBackend]:
        """Make ``backend`` the active provider.

        Returns:
            The previously installed backend, if any.
        """
        with self._lock:
            previous = self._backend
            self._backend = backend
        return previous

    def uninstall(self) -> Optional[TranslationBackend]:
        """Remove the active provider and return it."""
        with self._lock:
            previous = self._backend
            self._backend = None
        return previous

    def translate(
        self,
        key: str,
        locale: Optional[str] = None,
        default: Optional[str] = None,
    ) -> Any:
        with self._lock:
            backend = self._backend
            if locale is None:
                locale = self._default_locale
        if backend is None:
            if default is not None:
                return default
            return missing_translation(locale, key)
        return backend.translate(key, locale, default)


_registry = I18nRegistry()


def registry() -> I18nRegistry:
    return _registry


def install(backend: TranslationBackend) -> Optional[TranslationBackend]:
    """Install ``backend`` as the process-wide translation provider."""
    return _registry.install(backend)


def uninstall() -> Optional[TranslationBackend]:
    return _registry.uninstall()


def current_backend() -> Optional[TranslationBackend]:
    return _registry.backend


def translate(
    key: str, locale: Optional[str] = None, default: Optional[str] = None
) -> Any:
    """Translate ``key`` through the installed backend.

    Without an installed backend, returns ``default`` or a missing marker.
    """
    return _registry.translate(key, locale, default)


t = translate
