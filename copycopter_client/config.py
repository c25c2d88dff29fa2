"""Copycopter client configuration.

:class:`Configuration` holds every connection and behavior option,
computes the derived values (port, protocol, environment
classification), and wires the client components together when
applied. One configuration is shared per process through
:func:`configure`; repeated calls keep the options set earlier.

Example:
    Configure and apply in one step::

        import copycopter_client

        copycopter_client.configure(
            api_key="abc123",
            environment_name="production",
            cache_enabled=True,
        )

    Configure through a callback without applying::

        def setup(config):
            config.api_key = "abc123"
            config.secure = True

        config = copycopter_client.configure(apply=False, callback=setup)
        assert config.port == 443

    From a YAML file::

        config = Configuration.from_yaml("copycopter.yml")
        config.apply()
"""

import os
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from copycopter_client import i18n
from copycopter_client.backend import DEFAULT_LOOKUP_TIMEOUT, I18nBackend
from copycopter_client.cache import create_cache
from copycopter_client.client import Client
from copycopter_client.exceptions import (
    ConfigurationException,
    IllegalStateException,
    UnknownOptionException,
)
from copycopter_client.logging import get_logger
from copycopter_client.sync import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_BACKOFF_FACTOR,
    Sync,
)
from copycopter_client.version import VERSION

_logger = get_logger("config")

DEFAULT_HOST = "copycopter.com"
DEFAULT_CLIENT_NAME = "Copycopter Client"
DEFAULT_CLIENT_URL = "http://copycopter.com"
DEFAULT_POLLING_DELAY = 300
DEFAULT_DEVELOPMENT_ENVIRONMENTS = ("development", "staging")
DEFAULT_TEST_ENVIRONMENTS = ("test", "cucumber")

OPTIONS = (
    "proxy_host",
    "proxy_port",
    "proxy_user",
    "proxy_pass",
    "environment_name",
    "client_version",
    "client_name",
    "client_url",
    "secure",
    "host",
    "http_open_timeout",
    "http_read_timeout",
    "cache_enabled",
    "cache_expires_in",
    "port",
    "development_environments",
    "test_environments",
    "api_key",
    "polling_delay",
    "lookup_timeout",
    "backoff_multiplier",
    "max_backoff_factor",
    "default_locale",
)

DERIVED = ("protocol", "public")


def _environment_set(value: Any) -> set:
    if value is None:
        return set()
    if isinstance(value, str):
        return {value}
    return set(value)


class Configuration:
    """Options, derived values and component wiring for the client.

    Every option is readable and writable as an attribute, through
    :meth:`get`/:meth:`set`, and by index. Unknown option names raise
    :class:`UnknownOptionException`.

    Derived values are computed on every read: :attr:`protocol` and
    :attr:`port` follow :attr:`secure` unless a port was set explicitly,
    and :attr:`is_public`/:attr:`is_test` classify
    :attr:`environment_name`.

    Attributes:
        applied: Whether :meth:`apply` has run. Never reverts.
        client: The client built by the last :meth:`apply`.
        sync: The sync built by the last :meth:`apply`.
        cache: The cache built by the last :meth:`apply`.
        backend: The backend installed by the last :meth:`apply`.
    """

    def __init__(self):
        self._proxy_host: Optional[str] = None
        self._proxy_port: Optional[int] = None
        self._proxy_user: Optional[str] = None
        self._proxy_pass: Optional[str] = None
        self._environment_name: Optional[str] = None
        self._client_version: str = VERSION
        self._client_name: str = DEFAULT_CLIENT_NAME
        self._client_url: str = DEFAULT_CLIENT_URL
        self._secure: bool = False
        self._host: str = DEFAULT_HOST
        self._http_open_timeout: float = 2
        self._http_read_timeout: float = 5
        self._cache_enabled: bool = False
        self._cache_expires_in: Optional[float] = None
        self._port: Optional[int] = None
        self._development_environments = set(DEFAULT_DEVELOPMENT_ENVIRONMENTS)
        self._test_environments = set(DEFAULT_TEST_ENVIRONMENTS)
        self._api_key: Optional[str] = None
        self._polling_delay: float = DEFAULT_POLLING_DELAY
        self._lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT
        self._backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
        self._max_backoff_factor: float = DEFAULT_MAX_BACKOFF_FACTOR
        self._default_locale: str = i18n.DEFAULT_LOCALE

        self._applied = False
        self._lock = threading.RLock()
        self._client = None
        self._sync = None
        self._cache = None
        self._backend = None

    @staticmethod
    def _positive(name: str, value: Any) -> None:
        try:
            valid = value is not None and value > 0
        except TypeError as e:
            raise ConfigurationException(
                f"{name} must be a number, got {value!r}", cause=e
            ) from e
        if not valid:
            raise ConfigurationException(f"{name} must be positive")

    @staticmethod
    def _at_least_one(name: str, value: Any) -> None:
        try:
            valid = value is not None and value >= 1.0
        except TypeError as e:
            raise ConfigurationException(
                f"{name} must be a number, got {value!r}", cause=e
            ) from e
        if not valid:
            raise ConfigurationException(f"{name} must be >= 1.0")

    @staticmethod
    def _valid_port(name: str, value: Any) -> None:
        if value is None:
            return
        try:
            port = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationException(
                f"{name} must be an integer, got {value!r}", cause=e
            ) from e
        if not 0 < port < 65536:
            raise ConfigurationException(f"{name} must be between 1 and 65535")

    @property
    def proxy_host(self) -> Optional[str]:
        return self._proxy_host

    @proxy_host.setter
    def proxy_host(self, value: Optional[str]) -> None:
        self._proxy_host = value

    @property
    def proxy_port(self) -> Optional[int]:
        return self._proxy_port

    @proxy_port.setter
    def proxy_port(self, value: Optional[int]) -> None:
        self._valid_port("proxy_port", value)
        self._proxy_port = value

    @property
    def proxy_user(self) -> Optional[str]:
        return self._proxy_user

    @proxy_user.setter
    def proxy_user(self, value: Optional[str]) -> None:
        self._proxy_user = value

    @property
    def proxy_pass(self) -> Optional[str]:
        return self._proxy_pass

    @proxy_pass.setter
    def proxy_pass(self, value: Optional[str]) -> None:
        self._proxy_pass = value

    @property
    def environment_name(self) -> Optional[str]:
        """Name of the running environment, e.g. ``"production"``."""
        return self._environment_name

    @environment_name.setter
    def environment_name(self, value: Optional[str]) -> None:
        self._environment_name = value

    @property
    def client_version(self) -> str:
        return self._client_version

    @client_version.setter
    def client_version(self, value: str) -> None:
        self._client_version = value

    @property
    def client_name(self) -> str:
        return self._client_name

    @client_name.setter
    def client_name(self, value: str) -> None:
        self._client_name = value

    @property
    def client_url(self) -> str:
        return self._client_url

    @client_url.setter
    def client_url(self, value: str) -> None:
        self._client_url = value

    @property
    def secure(self) -> bool:
        """Whether to connect over HTTPS."""
        return self._secure

    @secure.setter
    def secure(self, value: bool) -> None:
        self._secure = value

    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, value: str) -> None:
        self._host = value

    @property
    def http_open_timeout(self) -> float:
        """Seconds allowed to establish a connection."""
        return self._http_open_timeout

    @http_open_timeout.setter
    def http_open_timeout(self, value: float) -> None:
        self._positive("http_open_timeout", value)
        self._http_open_timeout = value

    @property
    def http_read_timeout(self) -> float:
        """Seconds allowed to wait for a response."""
        return self._http_read_timeout

    @http_read_timeout.setter
    def http_read_timeout(self, value: float) -> None:
        self._positive("http_read_timeout", value)
        self._http_read_timeout = value

    @property
    def cache_enabled(self) -> bool:
        return self._cache_enabled

    @cache_enabled.setter
    def cache_enabled(self, value: bool) -> None:
        self._cache_enabled = value

    @property
    def cache_expires_in(self) -> Optional[float]:
        """Seconds a cached blurb stays valid, or ``None`` for no expiry."""
        return self._cache_expires_in

    @cache_expires_in.setter
    def cache_expires_in(self, value: Optional[float]) -> None:
        if value is not None:
            self._positive("cache_expires_in", value)
        self._cache_expires_in = value

    @property
    def port(self) -> int:
        """The explicit port if one was set, else 443 or 80 following :attr:`secure`.

        Assigning ``None`` returns to the derived port.
        """
        if self._port is not None:
            return self._port
        return 443 if self._secure else 80

    @port.setter
    def port(self, value: Optional[int]) -> None:
        self._valid_port("port", value)
        self._port = value

    @property
    def development_environments(self) -> set:
        """Environment names that download draft rather than published blurbs."""
        return self._development_environments

    @development_environments.setter
    def development_environments(self, value: Iterable[str]) -> None:
        self._development_environments = _environment_set(value)

    @property
    def test_environments(self) -> set:
        """Environment names in which the sync loop is never started."""
        return self._test_environments

    @test_environments.setter
    def test_environments(self, value: Iterable[str]) -> None:
        self._test_environments = _environment_set(value)

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        self._api_key = value

    @property
    def polling_delay(self) -> float:
        """Seconds between downloads while the server is healthy."""
        return self._polling_delay

    @polling_delay.setter
    def polling_delay(self, value: float) -> None:
        self._positive("polling_delay", value)
        self._polling_delay = value

    @property
    def lookup_timeout(self) -> float:
        """Upper bound on the refresh wait of a lookup that missed the cache."""
        return self._lookup_timeout

    @lookup_timeout.setter
    def lookup_timeout(self, value: float) -> None:
        self._positive("lookup_timeout", value)
        self._lookup_timeout = value

    @property
    def backoff_multiplier(self) -> float:
        return self._backoff_multiplier

    @backoff_multiplier.setter
    def backoff_multiplier(self, value: float) -> None:
        self._at_least_one("backoff_multiplier", value)
        self._backoff_multiplier = value

    @property
    def max_backoff_factor(self) -> float:
        """Cap of the failure backoff, as a multiple of :attr:`polling_delay`."""
        return self._max_backoff_factor

    @max_backoff_factor.setter
    def max_backoff_factor(self, value: float) -> None:
        self._at_least_one("max_backoff_factor", value)
        self._max_backoff_factor = value

    @property
    def default_locale(self) -> str:
        return self._default_locale

    @default_locale.setter
    def default_locale(self, value: str) -> None:
        self._default_locale = value

    @property
    def protocol(self) -> str:
        return "https" if self._secure else "http"

    @property
    def is_public(self) -> bool:
        """False only when :attr:`environment_name` is a development environment."""
        return self._environment_name not in self._development_environments

    @property
    def is_test(self) -> bool:
        return self._environment_name in self._test_environments

    @property
    def applied(self) -> bool:
        return self._applied

    @property
    def client(self):
        return self._client

    @property
    def sync(self):
        return self._sync

    @property
    def cache(self):
        return self._cache

    @property
    def backend(self):
        return self._backend

    def get(self, name: str) -> Any:
        """Read an option or derived value by name.

        Raises:
            UnknownOptionException: If ``name`` is not an option.
        """
        if name not in OPTIONS and name not in DERIVED:
            raise UnknownOptionException(name)
        if name == "public":
            return self.is_public
        return getattr(self, name)

    def set(self, name: str, value: Any) -> None:
        """Assign an option by name.

        Raises:
            UnknownOptionException: If ``name`` is not a writable option.
            ConfigurationException: If ``value`` is invalid.
        """
        if name not in OPTIONS:
            raise UnknownOptionException(name)
        setattr(self, name, value)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in OPTIONS or name in DERIVED

    def keys(self) -> List[str]:
        return list(OPTIONS) + list(DERIVED)

    def update(self, options: Mapping[str, Any]) -> "Configuration":
        """Assign several options at once."""
        for name, value in options.items():
            self.set(name, value)
        return self

    def to_hash(self) -> Dict[str, Any]:
        """Snapshot every option plus ``protocol`` and ``public``.

        Returns:
            An ordered dictionary detached from this configuration.
        """
        snapshot = OrderedDict()
        for name in OPTIONS:
            value = getattr(self, name)
            if isinstance(value, set):
                value = set(value)
            snapshot[name] = value
        snapshot["protocol"] = self.protocol
        snapshot["public"] = self.is_public
        return snapshot

    to_dict = to_hash

    def merge(self, extra: Mapping[str, Any]) -> Dict[str, Any]:
        """Return :meth:`to_hash` overlaid with ``extra``, leaving this configuration unchanged."""
        merged = self.to_hash()
        merged.update(extra)
        return merged

    def apply(
        self,
        client_factory: Callable[..., Any] = Client,
        sync_factory: Callable[..., Any] = Sync,
        backend_factory: Callable[..., Any] = I18nBackend,
        cache_factory: Callable[..., Any] = create_cache,
        registry: Optional[i18n.I18nRegistry] = None,
    ) -> None:
        """Build the client components and install the backend.

        Builds a client from the current snapshot, a sync around it and
        a backend around the sync, then installs the backend as the
        process-wide i18n provider. The sync loop is started unless the
        environment is a test environment. A sync built by an earlier
        apply is stopped first, so only one loop runs.

        Args:
            client_factory: Called as ``client_factory(options)``.
            sync_factory: Called as ``sync_factory(client, options, cache=cache)``.
            backend_factory: Called as
                ``backend_factory(sync, cache, lookup_timeout=...)``.
            cache_factory: Called as ``cache_factory(options)``.
            registry: Registry to install into; the process registry by default.
        """
        with self._lock:
            options = self.to_hash()
            cache = cache_factory(options)
            client = client_factory(options)
            sync = sync_factory(client, options, cache=cache)
            backend = backend_factory(
                sync, cache, lookup_timeout=options["lookup_timeout"]
            )

            previous_sync = self._sync
            if previous_sync is not None and previous_sync is not sync:
                previous_sync.stop()

            target = registry if registry is not None else i18n.registry()
            target.default_locale = options["default_locale"]
            target.install(backend)

            self._cache = cache
            self._client = client
            self._sync = sync
            self._backend = backend
            self._applied = True

            if self.is_test:
                _logger.info(
                    "Applied configuration for test environment %r; sync not started",
                    self._environment_name,
                )
            else:
                sync.start()
                _logger.info(
                    "Applied configuration for %s://%s:%s",
                    options["protocol"], options["host"], options["port"],
                )

    def shutdown(self) -> None:
        """Stop the sync loop started by :meth:`apply`, if any."""
        with self._lock:
            sync = self._sync
        if sync is not None:
            sync.stop()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Configuration":
        """Create a Configuration from a dictionary of options."""
        return cls().update(data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "Configuration":
        """Load configuration from a YAML file.

        Options may sit at the top level or under a ``copycopter`` key.

        Raises:
            ConfigurationException: If the file cannot be read or parsed.
        """
        try:
            import yaml
        except ImportError:
            raise ConfigurationException(
                "PyYAML is required for YAML configuration loading. "
                "Install it with: pip install pyyaml"
            )

        if not os.path.exists(yaml_path):
            raise ConfigurationException(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)
        except IOError as e:
            raise ConfigurationException(
                f"Failed to read configuration file: {e}", cause=e
            )

        return cls._from_yaml_data(data)

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "Configuration":
        """Load configuration from a YAML string."""
        try:
            import yaml
        except ImportError:
            raise ConfigurationException(
                "PyYAML is required for YAML configuration loading. "
                "Install it with: pip install pyyaml"
            )

        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)

        return cls._from_yaml_data(data)

    @classmethod
    def _from_yaml_data(cls, data: Any) -> "Configuration":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationException("YAML configuration must be a mapping")
        if "copycopter" in data:
            data = data["copycopter"] or {}
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return (
            f"Configuration(host={self._host!r}, port={self.port}, "
            f"environment_name={self._environment_name!r}, applied={self._applied})"
        )


_configuration: Optional[Configuration] = None
_configuration_lock = threading.Lock()


def configuration() -> Configuration:
    """Return the process-wide configuration, creating it on first use."""
    global _configuration
    with _configuration_lock:
        if _configuration is None:
            _configuration = Configuration()
        return _configuration


def configure(
    apply: bool = True,
    callback: Optional[Callable[[Configuration], None]] = None,
    **options: Any,
) -> Configuration:
    """Update the process-wide configuration and optionally apply it.

    The same :class:`Configuration` is reused across calls, so options
    set by an earlier call are preserved.

    Args:
        apply: Whether to call :meth:`Configuration.apply` afterwards.
        callback: Called with the configuration after ``options`` are set.
        **options: Options to assign.

    Returns:
        The process-wide configuration.
    """
    config = configuration()
    config.update(options)
    if callback is not None:
        callback(config)
    if apply:
        config.apply()
    return config


def deploy() -> None:
    """Publish the current draft blurbs through the applied configuration.

    Raises:
        IllegalStateException: If the configuration has not been applied.
    """
    config = configuration()
    if not config.applied or config.client is None:
        raise IllegalStateException("Configuration must be applied before deploying")
    config.client.deploy()


def reset() -> None:
    """Stop the running sync, uninstall the backend and forget the configuration."""
    global _configuration
    with _configuration_lock:
        config = _configuration
        _configuration = None
    if config is not None:
        config.shutdown()
        if config.backend is not None and i18n.current_backend() is config.backend:
            i18n.uninstall()
