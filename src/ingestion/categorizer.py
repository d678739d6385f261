"""
Keyword heuristics for news category and severity.

Rules are evaluated in priority order, first match wins. Category and
severity are decided independently of each other.

Keywords match whole words (or whole phrases), so "rce" does not fire
inside "source" and "low" does not fire inside "follow". A keyword ending
in punctuation ("cve-") matches as a word prefix. Inflected forms are
listed explicitly. "exploits" is left out of the CVE rule: in a headline
it is usually the verb ("ransomware exploits zero-day") and would
outrank the malware category.
"""

import re
from functools import lru_cache

from src.ingestion.schemas import Category, Severity

CATEGORY_RULES: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.CVE,
        (
            "cve-",
            "vulnerability", "vulnerabilities",
            "exploit", "exploited", "exploitation",
        ),
    ),
    (
        Category.BREACH,
        (
            "breach", "breaches", "breached",
            "leak", "leaks", "leaked",
            "hack", "hacks", "hacked", "hacker", "hackers", "hacking",
        ),
    ),
    (Category.EXPLOIT, ("malware", "ransomware", "trojan", "trojans", "trojanized")),
)

SEVERITY_RULES: tuple[tuple[Severity, tuple[str, ...]], ...] = (
    (Severity.CRITICAL, ("critical", "zero-day", "zero-days", "actively exploited")),
    (Severity.HIGH, ("high", "remote code execution", "rce")),
    (Severity.LOW, ("low", "minor")),
)


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    pattern = r"(?<![a-z0-9])" + re.escape(keyword)
    if keyword[-1].isalnum():
        pattern += r"(?![a-z0-9])"
    return re.compile(pattern)


def _matches_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(_keyword_pattern(k).search(text) for k in keywords)


def categorize(title: str, description: str) -> tuple[Category, Severity]:
    """
    Classify an article from its title and description.

    Args:
        title: Article title
        description: Plain-text description

    Returns:
        (category, severity); defaults are (GENERAL, MEDIUM)
    """
    combined = f"{title or ''} {description or ''}".lower()

    category = Category.GENERAL
    for candidate, keywords in CATEGORY_RULES:
        if _matches_any(combined, keywords):
            category = candidate
            break

    severity = Severity.MEDIUM
    for candidate, keywords in SEVERITY_RULES:
        if _matches_any(combined, keywords):
            severity = candidate
            break

    return category, severity
