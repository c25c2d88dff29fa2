"""YAML configuration example.

Loads options from a YAML document, builds the components without
installing them globally, and resolves a few blurbs directly through
the backend.

Usage:
    python yaml_config.py
"""

from copycopter_client import Configuration, i18n
from copycopter_client.logging import configure_logging

CONFIG_YAML = """
copycopter:
  api_key: abc123
  host: localhost
  port: 3000
  environment_name: test
  cache_enabled: true
  cache_expires_in: 600
  lookup_timeout: 0.5
"""


def main():
    configure_logging()

    config = Configuration.from_yaml_string(CONFIG_YAML)
    print(f"Configuration: {config!r}")
    print(f"Public: {config.is_public}, test: {config.is_test}")

    # Test environments never start the background poller
    registry = i18n.I18nRegistry()
    config.apply(registry=registry)
    print(f"Poller running: {config.sync.running}")

    for key in ("nav.home", "nav.about"):
        print(f"{key} = {registry.translate(key, locale='en', default=key.split('.')[-1])}")

    config.shutdown()


if __name__ == "__main__":
    main()
