"""Extraction worker contract: source URL -> normalized job dicts.

``extract`` never raises. Fetch and parse failures are absorbed into a
fallback record set and reported through ``ExtractionResult.error`` so the
calling run always reaches a terminal state.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any

import httpx

import aijobs.scrapers  # noqa: F401
from aijobs.config import get_settings
from aijobs.scrapers.base import scrape_client
from aijobs.scrapers.fallback import demo_jobs
from aijobs.scrapers.registry import DEFAULT_PLATFORM, detect_platform, get_scraper_class
from aijobs.services.enrichment import LLMEnricher
from aijobs.services.identity import company_key_from_url

logger = logging.getLogger(__name__)
settings = get_settings()

# Registry key -> display name for well-known AI companies
KNOWN_COMPANIES = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "deepmind": "Google DeepMind",
    "googledeepmind": "Google DeepMind",
    "mistral": "Mistral AI",
    "cohere": "Cohere",
    "xai": "xAI",
    "huggingface": "Hugging Face",
    "perplexity": "Perplexity",
}


@dataclass
class ExtractionResult:
    records: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    platform: str = DEFAULT_PLATFORM
    used_fallback: bool = False


def display_company(company_key: str) -> str:
    return KNOWN_COMPANIES.get(company_key, company_key.capitalize() or "Unknown")


def extract(
    source_url: str,
    company: str | None = None,
    client: httpx.Client | None = None,
    enricher: LLMEnricher | None = None,
) -> ExtractionResult:
    company = company or display_company(company_key_from_url(source_url))
    platform = detect_platform(source_url)
    scraper_class = get_scraper_class(platform) or get_scraper_class(DEFAULT_PLATFORM)
    result = ExtractionResult(platform=platform)

    # Clients created here are closed here; caller-supplied ones are left open
    with ExitStack() as stack:
        if client is None:
            client = stack.enter_context(scrape_client())
        if enricher is None and settings.llm_api_key:
            enricher = LLMEnricher()
            stack.enter_context(enricher.client)

        try:
            scraper = scraper_class(source_url, company, client=client, enricher=enricher)
            result.records = scraper.run()
        except Exception as e:
            result.error = str(e)[:2000] or e.__class__.__name__
            logger.error(f"Extraction failed for {source_url}: {e}")

    if not result.records:
        logger.warning(f"No jobs extracted from {source_url}, using fallback data for {company}")
        result.records = demo_jobs(company, source_url)
        result.used_fallback = True

    return result
