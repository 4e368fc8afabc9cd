"""Identity and normalization helpers shared by import, audit and the client.

Two keys are derived from a job:
    record id: sha256 of normalized (company, title, location); the import
               uniqueness constraint.
    audit key: (company, title) normalized; what the duplicate auditor groups on.
"""

import hashlib
import re
from urllib.parse import urlparse

_NON_WORD = re.compile(r"[^\w]+", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")

# Hosts whose first path segment names the company (boards.greenhouse.io/anthropic)
_ATS_HOSTS = (
    "greenhouse.io",
    "lever.co",
    "ashbyhq.com",
    "smartrecruiters.com",
    "workable.com",
)

_HOST_PREFIXES = ("www.", "careers.", "jobs.", "job-boards.", "boards.")


def normalize_company(company: str | None) -> str:
    """Lower-case and trim; inner whitespace collapsed."""
    return _WHITESPACE.sub(" ", (company or "").strip().lower())


def normalize_title(title: str | None) -> str:
    """Lower-case, punctuation to spaces, whitespace collapsed.

    "Software Engineer, GPU Platform" and "software engineer - gpu  platform"
    normalize to the same string.
    """
    text = (title or "").lower().replace("_", " ")
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_location(location: str | None) -> str:
    return normalize_title(location)


def company_key_for(company: str | None) -> str:
    """Registry key for a company name: lower-case, no spaces or punctuation."""
    return _NON_WORD.sub("", normalize_company(company)).replace("_", "")


def record_id(company: str | None, title: str | None, location: str | None) -> str:
    identity = "|".join((
        normalize_company(company),
        normalize_title(title),
        normalize_location(location),
    ))
    return hashlib.sha256(identity.encode()).hexdigest()


def audit_key(company: str | None, title: str | None) -> tuple[str, str]:
    return normalize_company(company), normalize_title(title)


def company_key_from_url(url: str) -> str:
    """Best-effort company key from a careers URL.

    https://openai.com/careers/search/        -> "openai"
    https://boards.greenhouse.io/anthropic     -> "anthropic"
    https://jobs.lever.co/mistral/...          -> "mistral"
    """
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    path_parts = [p for p in parsed.path.split("/") if p]

    if any(host == ats or host.endswith("." + ats) for ats in _ATS_HOSTS) and path_parts:
        return company_key_for(path_parts[0])

    for prefix in _HOST_PREFIXES:
        if host.startswith(prefix):
            host = host[len(prefix):]
            break
    name = host.split(".")[0] if host else ""
    return company_key_for(name)
