"""Generic career page scraper for companies without a known ATS.

Finds job-like links on the careers page, then visits each posting to pull
salary and skills out of the page text.
"""

import logging
import re
import time
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from aijobs.config import get_settings
from aijobs.scrapers.base import BaseScraper
from aijobs.scrapers.registry import register_scraper
from aijobs.services.job_text import (
    clean_title,
    default_skills,
    estimate_salary,
    extract_salary,
    extract_skills,
    infer_department,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Keywords indicating a link is a job posting
JOB_KEYWORDS = {
    "engineer", "scientist", "researcher", "developer", "manager",
    "director", "analyst", "specialist", "designer", "lead", "architect",
}

KNOWN_LOCATIONS = (
    "Remote", "San Francisco", "New York", "Seattle", "London", "Dublin",
    "Singapore", "Tokyo", "Paris", "Zurich", "Toronto", "Mountain View",
)
DEFAULT_LOCATION = "San Francisco"

SKIP_HREFS = ("#", "mailto:", "javascript:", "facebook.", "twitter.", "linkedin.")


@register_scraper("career_page")
class CareerPageScraper(BaseScraper):

    def __init__(self, *args, request_delay: float | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.request_delay = settings.scrape_request_delay if request_delay is None else request_delay

    def scrape(self) -> list[dict]:
        url = self.source_url
        logger.info(f"Fetching career page: {url}")

        resp = self.client.get(url)
        resp.raise_for_status()

        links = self._find_job_links(resp.text, url)
        logger.info(f"Found {len(links)} job-like links on career page")

        for i, link in enumerate(links[: self.max_jobs]):
            link["page_text"] = self._fetch_posting_text(link["url"])
            if self.request_delay and i + 1 < min(len(links), self.max_jobs):
                time.sleep(self.request_delay)
        return links

    def normalize(self, raw: dict) -> dict:
        title = clean_title(raw["title"])
        text = raw.get("page_text")

        if text is None:
            # Posting page unreachable: keep the job with estimated data
            salary_min, salary_max = estimate_salary(title)
            return {
                "title": title,
                "source_url": raw["url"],
                "location": raw.get("location"),
                "department": infer_department(title),
                "salary_min": salary_min,
                "salary_max": salary_max,
                "skills": default_skills(title),
                "description": f"{title} at {self.company}",
            }

        salary_text, salary_min, salary_max = extract_salary(text)
        return {
            "title": title,
            "source_url": raw["url"],
            "location": raw.get("location"),
            "department": infer_department(title),
            "salary_min": salary_min,
            "salary_max": salary_max,
            "salary_text": salary_text,
            "skills": extract_skills(text),
        }

    def posting_text(self, raw: dict) -> str:
        return raw.get("page_text") or ""

    def _find_job_links(self, html: str, base_url: str) -> list[dict]:
        soup = BeautifulSoup(html, "lxml")
        jobs = []
        seen = set()

        for link in soup.find_all("a", href=True):
            href = link["href"]
            text = link.get_text(" ", strip=True)
            if not text or len(text) <= 5 or len(text) >= 120:
                continue
            if any(skip in href.lower() for skip in SKIP_HREFS):
                continue
            if not self._looks_like_job(text):
                continue

            job_url = urljoin(base_url, href)
            if job_url in seen or job_url.rstrip("/") == base_url.rstrip("/"):
                continue
            seen.add(job_url)

            container = link.find_parent(["li", "article", "section", "div"])
            container_text = container.get_text(" ", strip=True) if container else text
            jobs.append({
                "title": text,
                "url": job_url,
                "location": self._guess_location(container_text),
            })

        return jobs

    def _fetch_posting_text(self, url: str) -> str | None:
        try:
            resp = self.client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch posting {url}: {e}")
            return None

        soup = BeautifulSoup(resp.text, "lxml")
        for tag in soup(["script", "style"]):
            tag.decompose()
        body = soup.body or soup
        return re.sub(r"\s+", " ", body.get_text(" ")).strip()

    @staticmethod
    def _looks_like_job(text: str) -> bool:
        """Heuristic: does this text look like a job title?"""
        words = set(re.findall(r"[a-z]+", text.lower()))
        return bool(words & JOB_KEYWORDS)

    @staticmethod
    def _guess_location(text: str) -> str:
        for location in KNOWN_LOCATIONS:
            if location.lower() in text.lower():
                return location
        return DEFAULT_LOCATION
