"""Scraper registry: maps platform names to scraper classes."""

import logging
from typing import Type
from urllib.parse import urlparse

from aijobs.scrapers.base import BaseScraper

logger = logging.getLogger(__name__)

# Platform name -> scraper class mapping
_REGISTRY: dict[str, Type[BaseScraper]] = {}

# Host suffix -> platform name
_HOST_PLATFORMS: dict[str, str] = {}

DEFAULT_PLATFORM = "career_page"


def register_scraper(platform: str, hosts: tuple[str, ...] = ()):
    """Decorator to register a scraper class for a platform and the hosts it serves."""
    def decorator(cls: Type[BaseScraper]):
        cls.platform = platform
        _REGISTRY[platform] = cls
        for host in hosts:
            _HOST_PLATFORMS[host] = platform
        logger.debug(f"Registered scraper for platform: {platform}")
        return cls
    return decorator


def get_scraper_class(platform: str) -> Type[BaseScraper] | None:
    """Look up the scraper class for a given platform."""
    return _REGISTRY.get(platform)


def detect_platform(url: str) -> str:
    """Pick a platform from the URL host, falling back to the generic career page."""
    host = (urlparse(url).hostname or "").lower()
    for suffix, platform in _HOST_PLATFORMS.items():
        if host == suffix or host.endswith("." + suffix):
            return platform
    return DEFAULT_PLATFORM


def list_platforms() -> list[str]:
    """List all registered platforms."""
    return list(_REGISTRY.keys())
