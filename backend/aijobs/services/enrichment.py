"""LLM enrichment of scraped jobs (salary band, skills, short description).

Talks to any OpenAI-compatible ``/chat/completions`` endpoint. Every failure
is logged and leaves the job untouched.
"""

import json
import logging
from typing import Any

import httpx

from aijobs.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = (
    "Extract salary and skills from a job posting. Reply with JSON only: "
    '{"salary_min": int, "salary_max": int, "skills": [str], "description": str}. '
    "Salaries are in thousands of USD ($405K - $590K -> 405, 590); use null when absent. "
    "Description is at most 100 words."
)

MAX_POSTING_CHARS = 3000


class LLMEnricher:

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model = model or settings.llm_model
        self.client = client or httpx.Client(timeout=settings.llm_timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def analyze(self, title: str, location: str | None, text: str) -> dict[str, Any] | None:
        """Ask the model about one posting. Returns parsed fields or None."""
        if not self.enabled:
            return None

        try:
            resp = self.client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "temperature": 0,
                    "max_tokens": 400,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {
                            "role": "user",
                            "content": f"Title: {title}\nLocation: {location or 'n/a'}\n\n{text[:MAX_POSTING_CHARS]}",
                        },
                    ],
                },
            )
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
            return json.loads(content)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"LLM analysis failed for '{title}': {e}")
            return None

    def enrich(self, job: dict[str, Any], text: str) -> dict[str, Any]:
        """Fill salary/skills/description the scraper could not find."""
        if job.get("salary_min") and job.get("skills"):
            return job

        analysis = self.analyze(job["title"], job.get("location"), text)
        if not analysis:
            return job

        for key in ("salary_min", "salary_max"):
            value = analysis.get(key)
            if not job.get(key) and isinstance(value, (int, float)) and value > 0:
                job[key] = int(value)
        skills = analysis.get("skills")
        if not job.get("skills") and isinstance(skills, list):
            job["skills"] = [str(s) for s in skills if s]
        if not job.get("description") and isinstance(analysis.get("description"), str):
            job["description"] = analysis["description"]
        return job
