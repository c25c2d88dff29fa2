"""Narrow capability interfaces between client components.

:class:`~copycopter_client.config.Configuration` wires collaborators
through these protocols, so any object with the right methods can be
supplied in place of the default implementation (test doubles included)
without subclassing anything.
"""

from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class Fetcher(Protocol):
    """Transport that downloads and uploads blurbs."""

    def fetch(self) -> Dict[str, Any]:
        """Return the full translation payload."""
        ...

    def push(self, changes: Mapping[str, Any]) -> None:
        """Upload new or changed blurbs."""
        ...


@runtime_checkable
class Poller(Protocol):
    """Background synchronization with an on-demand refresh path."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def refresh_now(self, timeout: Optional[float] = None) -> bool:
        """Fetch immediately, waiting at most ``timeout`` seconds."""
        ...

    def lookup(self, key: str) -> Optional[Any]:
        """Read a blurb from the most recently downloaded payload."""
        ...

    def queue_default(self, key: str, value: Any) -> None:
        """Remember a default to upload on the next tick."""
        ...


@runtime_checkable
class TranslationBackend(Protocol):
    """Lookup capability consumed by the i18n layer."""

    def translate(
        self, key: str, locale: str, fallback: Optional[str] = None
    ) -> Any:
        ...
