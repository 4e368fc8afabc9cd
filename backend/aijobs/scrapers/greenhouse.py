"""Greenhouse job board scraper (e.g., Anthropic).

Greenhouse exposes a public JSON board API.
"""

import html
import logging
import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from aijobs.scrapers.base import BaseScraper
from aijobs.scrapers.registry import register_scraper
from aijobs.services.job_text import extract_salary, extract_skills, infer_department

logger = logging.getLogger(__name__)

API_URL = "https://boards-api.greenhouse.io/v1/boards/{board}/jobs"


@register_scraper("greenhouse", hosts=("greenhouse.io",))
class GreenhouseScraper(BaseScraper):

    def scrape(self) -> list[dict]:
        # Board token is the first path segment: boards.greenhouse.io/anthropic
        parts = [p for p in urlparse(self.source_url).path.split("/") if p]
        board = parts[0] if parts else self.company.lower()

        logger.info(f"Fetching Greenhouse board {board}")
        resp = self.client.get(
            API_URL.format(board=board),
            params={"content": "true"},
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
        jobs = resp.json().get("jobs", [])
        logger.info(f"Fetched {len(jobs)} postings from Greenhouse")
        return jobs

    def normalize(self, raw: dict) -> dict:
        text = self.posting_text(raw)
        salary_text, salary_min, salary_max = extract_salary(text)

        departments = raw.get("departments") or []
        department = departments[0].get("name") if departments and isinstance(departments[0], dict) else None
        location = raw.get("location", {})

        return {
            "title": raw["title"].strip(),
            "source_url": raw.get("absolute_url", self.source_url),
            "location": location.get("name") if isinstance(location, dict) else None,
            "department": department or infer_department(raw["title"]),
            "salary_min": salary_min,
            "salary_max": salary_max,
            "salary_text": salary_text,
            "skills": extract_skills(text),
        }

    def posting_text(self, raw: dict) -> str:
        # Board API returns the description as escaped HTML
        content = html.unescape(raw.get("content") or "")
        text = BeautifulSoup(content, "lxml").get_text(" ") if content else ""
        return re.sub(r"\s+", " ", text).strip()
