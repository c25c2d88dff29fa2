"""Basic usage example for the Copycopter Python client.

This example demonstrates how to:
- Configure and apply the process-wide client
- Look up blurbs with fallbacks
- Watch for synchronization failures
- Publish drafts with a deploy

Prerequisites:
    - A Copycopter project and its API key in COPYCOPTER_API_KEY

Usage:
    python basic_usage.py
"""

import os
import time

import copycopter_client
from copycopter_client import i18n


def main():
    config = copycopter_client.configure(
        api_key=os.environ.get("COPYCOPTER_API_KEY", "abc123"),
        environment_name="production",
        cache_enabled=True,
        polling_delay=30,
    )

    def on_failure(error: Exception):
        print(f"Sync failed: {error}")

    config.sync.add_failure_listener(on_failure)

    try:
        # Blurbs missing on the server are returned as given and uploaded
        print(i18n.translate("home.title", locale="en", default="Welcome"))
        print(i18n.translate("home.subtitle", locale="en", default="Glad you're here"))

        time.sleep(1)
        print(f"\nSync state: {config.sync.state.to_dict()}")
        print(f"Cache stats: {config.cache.stats.to_dict()}")
        print(f"Locales: {config.backend.available_locales()}")

        # Publish the current drafts
        copycopter_client.deploy()
        print("\nDeployed drafts")

    finally:
        copycopter_client.reset()
        print("\nClient shutdown complete")


if __name__ == "__main__":
    main()
