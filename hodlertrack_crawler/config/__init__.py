"""
Configuration management for the crawler.

Loads and validates settings from environment variables and an optional .env
file into a single CrawlerSettings object.
"""

from hodlertrack_crawler.config.env import load_settings_from_env  # noqa: F401
from hodlertrack_crawler.config.settings import CrawlerSettings  # noqa: F401

__all__ = ["CrawlerSettings", "load_settings_from_env"]
