"""Lever postings scraper (e.g., Mistral AI)."""

import logging
from urllib.parse import urlparse

from aijobs.scrapers.base import BaseScraper
from aijobs.scrapers.registry import register_scraper
from aijobs.services.job_text import extract_salary, extract_skills, infer_department

logger = logging.getLogger(__name__)

API_URL = "https://api.lever.co/v0/postings/{company}"


@register_scraper("lever", hosts=("lever.co",))
class LeverScraper(BaseScraper):

    def scrape(self) -> list[dict]:
        # Site name is the first path segment: jobs.lever.co/mistral
        parts = [p for p in urlparse(self.source_url).path.split("/") if p]
        site = parts[0] if parts else self.company.lower()

        logger.info(f"Fetching Lever postings for {site}")
        resp = self.client.get(
            API_URL.format(company=site),
            params={"mode": "json"},
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
        postings = resp.json()
        if not isinstance(postings, list):
            return []
        return postings

    def normalize(self, raw: dict) -> dict:
        title = raw["text"].strip()
        categories = raw.get("categories") or {}
        text = self.posting_text(raw)

        salary_range = raw.get("salaryRange") or {}
        if salary_range.get("min") and salary_range.get("max"):
            salary_min = round(salary_range["min"] / 1000)
            salary_max = round(salary_range["max"] / 1000)
            salary_text = f"{salary_range.get('currency', 'USD')} {salary_range['min']}-{salary_range['max']}"
        else:
            salary_text, salary_min, salary_max = extract_salary(text)

        return {
            "title": title,
            "source_url": raw.get("hostedUrl", self.source_url),
            "location": categories.get("location"),
            "department": categories.get("department") or categories.get("team") or infer_department(title),
            "salary_min": salary_min,
            "salary_max": salary_max,
            "salary_text": salary_text,
            "skills": extract_skills(text),
        }

    def posting_text(self, raw: dict) -> str:
        return " ".join(filter(None, [raw.get("descriptionPlain"), raw.get("additionalPlain")]))
