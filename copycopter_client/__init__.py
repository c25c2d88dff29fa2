"""Copycopter Python Client."""

from copycopter_client.version import VERSION
from copycopter_client.config import (
    Configuration,
    configuration,
    configure,
    deploy,
    reset,
)
from copycopter_client.cache import NullCache, TranslationCache, CacheStats, create_cache
from copycopter_client.client import Client
from copycopter_client.sync import Sync, SyncState, BackoffPolicy
from copycopter_client.backend import I18nBackend, missing_translation
from copycopter_client.protocols import Fetcher, Poller, TranslationBackend
from copycopter_client.exceptions import (
    CopycopterException,
    ConfigurationException,
    UnknownOptionException,
    IllegalStateException,
    NetworkException,
    NetworkErrorKind,
    ConnectTimeoutException,
    ReadTimeoutException,
    HttpStatusException,
)
from copycopter_client import i18n

__version__ = VERSION

__all__ = [
    "VERSION",
    "Configuration",
    "configuration",
    "configure",
    "deploy",
    "reset",
    "NullCache",
    "TranslationCache",
    "CacheStats",
    "create_cache",
    "Client",
    "Sync",
    "SyncState",
    "BackoffPolicy",
    "I18nBackend",
    "missing_translation",
    "Fetcher",
    "Poller",
    "TranslationBackend",
    "CopycopterException",
    "ConfigurationException",
    "UnknownOptionException",
    "IllegalStateException",
    "NetworkException",
    "NetworkErrorKind",
    "ConnectTimeoutException",
    "ReadTimeoutException",
    "HttpStatusException",
    "i18n",
]
