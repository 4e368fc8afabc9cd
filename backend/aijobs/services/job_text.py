"""Salary, skill and department extraction from job posting text."""

import re
from typing import Final

# Range patterns take priority over single amounts
SALARY_RANGE_PATTERNS: Final[list[re.Pattern]] = [
    re.compile(r"\$(\d{1,3}(?:,\d{3})+)\s*[-–—]\s*\$(\d{1,3}(?:,\d{3})+)"),
    re.compile(r"\$(\d{2,})\s*([Kk])?\s*[-–—]\s*\$(\d{2,})\s*([Kk])?"),
    re.compile(r"USD\s*(\d{2,})\s*([Kk])?\s*[-–—]\s*(\d{2,})\s*([Kk])?"),
]

SALARY_SINGLE_PATTERNS: Final[list[re.Pattern]] = [
    re.compile(r"\$(\d{1,3}(?:,\d{3})+)\s*\+?"),
    re.compile(r"\$(\d{3,})\s*([Kk])?\s*\+"),
    re.compile(r"\$(\d{3,})\s*([Kk])?(?!\s*[-–—\d])"),
]

# Skill label -> patterns matched against lower-cased text (first match wins per skill)
SKILL_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    ("Python", [r"\bpython\b"]),
    ("PyTorch", [r"\bpytorch\b", r"\btorch\b"]),
    ("TensorFlow", [r"\btensorflow\b"]),
    ("JAX", [r"\bjax\b"]),
    ("CUDA", [r"\bcuda\b"]),
    ("C++", [r"c\+\+", r"\bcpp\b"]),
    ("Go", [r"\bgolang\b"]),
    ("Rust", [r"\brust\b"]),
    ("Kubernetes", [r"\bkubernetes\b", r"\bk8s\b"]),
    ("Docker", [r"\bdocker\b"]),
    ("AWS", [r"\baws\b"]),
    ("GCP", [r"\bgcp\b", r"\bgoogle cloud\b"]),
    ("TypeScript", [r"\btypescript\b"]),
    ("React", [r"\breact\b"]),
    ("Machine Learning", [r"\bmachine learning\b", r"\bml\b"]),
    ("Deep Learning", [r"\bdeep learning\b"]),
    ("Distributed Systems", [r"\bdistributed systems?\b"]),
    ("Microservices", [r"\bmicroservices?\b"]),
    ("PostgreSQL", [r"\bpostgres(?:ql)?\b"]),
    ("Redis", [r"\bredis\b"]),
    ("SQL", [r"\bsql\b"]),
]

# (department, title keywords), first match wins
DEPARTMENT_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    ("Research", [r"\bresearch", r"\bscientist\b"]),
    ("Management", [r"\bmanager\b", r"\bdirector\b", r"\bhead of\b", r"\bvp\b"]),
    ("Sales", [r"\bsales\b", r"\baccount\b"]),
    ("Security", [r"\bsecurity\b"]),
    ("Data", [r"\bdata\b"]),
    ("Product", [r"\bproduct\b"]),
    ("Engineering", [r"\bengineer", r"\bdeveloper\b"]),
]

# (seniority pattern, (min, max)) in thousands of USD
SALARY_ESTIMATES: Final[list[tuple[str, tuple[int, int]]]] = [
    (r"\bprincipal\b", (405, 590)),
    (r"\bstaff\b", (380, 550)),
    (r"\bsenior\b|\bsr\.?\b", (280, 420)),
    (r"\bengineer\b|\bscientist\b", (220, 350)),
]
DEFAULT_SALARY_ESTIMATE: Final[tuple[int, int]] = (180, 280)

DEFAULT_SKILLS: Final[list[tuple[str, list[str]]]] = [
    (r"\bgpu\b|\binfrastructure\b", ["Python", "CUDA", "C++", "Kubernetes", "PyTorch", "Distributed Systems"]),
    (r"\bmachine learning\b|\bml\b", ["Python", "TensorFlow", "PyTorch", "Machine Learning", "Deep Learning"]),
    (r"\bresearch", ["Python", "Research", "Machine Learning", "Deep Learning", "Mathematics"]),
    (r"\bengineer", ["Python", "Software Engineering", "Distributed Systems"]),
]
FALLBACK_SKILLS: Final[list[str]] = ["Python", "Machine Learning"]


def _to_thousands(amount: int, has_k: bool) -> int:
    if has_k or amount < 1000:
        return amount
    return round(amount / 1000)


def _as_int(digits: str) -> int:
    return int(digits.replace(",", ""))


def extract_salary(text: str | None) -> tuple[str | None, int | None, int | None]:
    """Find a salary in free text.

    Returns (matched text, min, max) in thousands of USD. A single amount is
    widened to a +/-20% band.
    """
    if not text:
        return None, None, None

    for pattern in SALARY_RANGE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        groups = match.groups()
        if len(groups) == 2:
            low = _to_thousands(_as_int(groups[0]), False)
            high = _to_thousands(_as_int(groups[1]), False)
        else:
            has_k = bool(groups[1] or groups[3])
            low = _to_thousands(_as_int(groups[0]), has_k)
            high = _to_thousands(_as_int(groups[2]), has_k)
        return match.group(0).strip(), low, high

    for pattern in SALARY_SINGLE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        groups = match.groups()
        has_k = len(groups) > 1 and bool(groups[1])
        amount = _to_thousands(_as_int(groups[0]), has_k)
        return match.group(0).strip(), round(amount * 0.8), round(amount * 1.2)

    return None, None, None


def extract_skills(text: str | None) -> list[str]:
    if not text:
        return []
    lowered = text.lower()
    return [
        skill for skill, patterns in SKILL_PATTERNS
        if any(re.search(p, lowered) for p in patterns)
    ]


def infer_department(title: str | None) -> str:
    text = (title or "").lower()
    for department, patterns in DEPARTMENT_PATTERNS:
        if any(re.search(p, text) for p in patterns):
            return department
    return "Other"


def estimate_salary(title: str | None) -> tuple[int, int]:
    """Seniority-based salary band used when a posting page could not be read."""
    text = (title or "").lower()
    for pattern, band in SALARY_ESTIMATES:
        if re.search(pattern, text):
            return band
    return DEFAULT_SALARY_ESTIMATE


def default_skills(title: str | None) -> list[str]:
    text = (title or "").lower()
    for pattern, skills in DEFAULT_SKILLS:
        if re.search(pattern, text):
            return list(skills)
    return list(FALLBACK_SKILLS)


def clean_title(title: str) -> str:
    """Split run-together words left by flattened markup ("EngineeringSan Francisco")."""
    title = re.sub(r"([a-z])([A-Z][a-z])", r"\1 \2", title)
    return re.sub(r"\s+", " ", title).strip()
