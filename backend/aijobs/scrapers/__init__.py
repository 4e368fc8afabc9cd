"""Scraper package: import all scrapers to trigger @register_scraper decorators."""

from aijobs.scrapers.career_page import CareerPageScraper  # noqa: F401
from aijobs.scrapers.greenhouse import GreenhouseScraper  # noqa: F401
from aijobs.scrapers.lever import LeverScraper  # noqa: F401
