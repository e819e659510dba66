#!/usr/bin/env python3
"""
Basic usage examples for the News API client library.

Reads credentials from NEWS_API_ID, NEWS_API_SECRET and NEWS_API_CHANNEL
and reads a channel, publishes a preview article and sends an alert.
"""

import logging
import os
import sys

from news_api_client import NewsAPIClient, NewsAPIClientError


def main():
    """Run basic usage examples."""
    logging.basicConfig(level=logging.INFO)

    api_id = os.environ.get("NEWS_API_ID")
    api_secret = os.environ.get("NEWS_API_SECRET")
    channel_id = os.environ.get("NEWS_API_CHANNEL")
    if not (api_id and api_secret and channel_id):
        print("Set NEWS_API_ID, NEWS_API_SECRET and NEWS_API_CHANNEL first.")
        return 1

    print("=== News API Client Usage Examples ===\n")

    with NewsAPIClient(api_id, api_secret, timeout=30000) as client:
        try:
            print("1. Reading channel...")
            channel = client.get(f"/channels/{channel_id}")
            print(f"   ✓ Channel: {channel.get('name', channel_id)}\n")

            print("2. Publishing preview article...")
            article = client.post(f"/channels/{channel_id}/articles", form_data={
                "metadata": {"data": {"isPreview": True}},
                "article.json": ("article.json", {
                    "version": "1.7",
                    "identifier": "example-article",
                    "title": "Hello from Python",
                    "language": "en",
                    "layout": {},
                    "components": [{"role": "title", "text": "Hello from Python"}],
                }),
            })
            print(f"   ✓ Article created: {article['id']}\n")

            print("3. Sending alert notification...")
            notification = client.post(
                f"/articles/{article['id']}/notifications",
                form_data={"data": {"alertBody": "Hello from Python"}}
            )
            print(f"   ✓ Notification sent: {notification}\n")

            print("4. Deleting article...")
            client.delete(f"/articles/{article['id']}")
            print("   ✓ Deleted\n")
        except NewsAPIClientError as e:
            print(f"   ✗ Request failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
