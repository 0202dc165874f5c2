"""
Heuristic job-description -> role tag mapping used to narrow retrieval.

ROLE_KEYWORDS is an ordered table and the order is part of the behaviour:
keywords overlap across roles, and the first role with any matching keyword
wins. A description mentioning both "software engineer" and "data science"
resolves to the software role because it is listed first. Bump
ROLE_TABLE_VERSION whenever entries are added, removed or reordered.
"""

from __future__ import annotations

from typing import Optional, Tuple

ROLE_TABLE_VERSION = 1

ROLE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("software engineer", (
        "software engineer", "software developer", "backend", "back-end", "frontend",
        "front-end", "full stack", "full-stack", "web developer", "programmer", "developer",
    )),
    ("data scientist", (
        "data scientist", "data science", "machine learning", "ml engineer", "data analyst",
        "data engineer", "analytics",
    )),
    ("devops engineer", (
        "devops", "site reliability", "cloud engineer", "platform engineer", "kubernetes",
    )),
    ("product manager", ("product manager", "product owner", "program manager")),
    ("designer", ("ux designer", "ui designer", "product designer", "graphic designer", "designer")),
    ("marketing", ("marketing", "seo specialist", "content strategist")),
    ("sales", ("sales", "account executive", "business development")),
)


def classify_role(job_description: str) -> Optional[str]:
    text = (job_description or "").lower()
    if not text:
        return None
    for role, keywords in ROLE_KEYWORDS:
        if any(k in text for k in keywords):
            return role
    return None
