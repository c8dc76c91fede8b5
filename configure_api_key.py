#!/usr/bin/env python3
"""
Store the YouTube Data API key in the local vextube config.

Usage: python configure_api_key.py <YOUR_API_KEY> [--local-db PATH]
"""

import argparse
import sys

from vextube.config_manager import ConfigManager
from vextube.database import LocalDatabase
from vextube.youtube import YouTubeClient


def main():
    parser = argparse.ArgumentParser(
        description="Configure the YouTube API key used for playlist fetching",
        epilog=(
            "To get an API key: create a project at https://console.cloud.google.com/, "
            "enable YouTube Data API v3 and create an API key credential."
        ),
    )
    parser.add_argument("api_key", help="YouTube Data API v3 key")
    parser.add_argument("--local-db", help="Path to the local database")
    args = parser.parse_args()

    api_key = args.api_key.strip()
    if not api_key:
        print("Error: API key must not be empty")
        sys.exit(1)

    db = LocalDatabase(args.local_db)
    config = ConfigManager(db)
    config.set("youtube_api_key", api_key)

    if not YouTubeClient(config).is_configured():
        print("Error: API key was saved but the YouTube client could not be initialized")
        db.close()
        sys.exit(1)

    print(f"API key configured: {api_key[:6]}...{api_key[-4:]}")
    db.close()


if __name__ == "__main__":
    main()
