"""
crm/services/scoring.py — Lead qualification scoring.

A lead's score (0–100) is the sum of four sub-scores:
  - company size   (0–30)  stepped lookup on the size bucket
  - industry fit   (0–25)  three-tier industry classification
  - engagement     (0–25)  High / Medium / Low
  - budget fit     (0–20)  executive title and/or a large company

Pure functions: no I/O, no randomness. Unknown or missing inputs fall
through to fixed defaults and never raise.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from crm.config import settings
from crm.db.models import LeadStatus

logger = logging.getLogger(__name__)


COMPANY_SIZE_SCORES = {
    "500+": 30,
    "201-500": 28,
    "51-200": 25,
    "11-50": 20,
    "1-10": 15,
}
DEFAULT_COMPANY_SIZE_SCORE = 10

HIGH_FIT_INDUSTRIES = frozenset({"Technology", "Software", "SaaS"})
MEDIUM_FIT_INDUSTRIES = frozenset({"Manufacturing", "Healthcare", "Finance"})
LOW_FIT_INDUSTRIES = frozenset({"Retail", "Hospitality", "Non-profit"})
UNCLASSIFIED_INDUSTRY_SCORE = 16

ENGAGEMENT_SCORES = {
    "High": 20,
    "Medium": 15,
    "Low": 10,
}
DEFAULT_ENGAGEMENT_SCORE = 12

EXECUTIVE_TITLE_KEYWORDS = ("ceo", "cto", "vp", "director", "head of")

# Fields that feed calculate_score(); editing any of them triggers a rescore.
SCORING_FIELDS = ("company_size", "industry", "engagement_level", "title")


@dataclass(frozen=True)
class ScoreBreakdown:
    company_size_score: int
    industry_fit_score: int
    engagement_score: int
    budget_fit_score: int

    def total(self) -> int:
        return (
            self.company_size_score
            + self.industry_fit_score
            + self.engagement_score
            + self.budget_fit_score
        )

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreResult:
    total_score: int
    breakdown: ScoreBreakdown


def _field(lead: Any, name: str) -> Any:
    if isinstance(lead, Mapping):
        return lead.get(name)
    return getattr(lead, name, None)


def _enum_value(value: Any) -> Any:
    # Accept EngagementLevel members as well as plain strings.
    return getattr(value, "value", value)


def company_size_score(company_size: Any) -> int:
    if not isinstance(company_size, str):
        return DEFAULT_COMPANY_SIZE_SCORE
    return COMPANY_SIZE_SCORES.get(company_size, DEFAULT_COMPANY_SIZE_SCORE)


def industry_fit_score(industry: Any) -> int:
    if not isinstance(industry, str):
        return UNCLASSIFIED_INDUSTRY_SCORE
    if industry in HIGH_FIT_INDUSTRIES:
        return 22
    if industry in MEDIUM_FIT_INDUSTRIES:
        return 18
    if industry in LOW_FIT_INDUSTRIES:
        return 14
    return UNCLASSIFIED_INDUSTRY_SCORE


def engagement_score(engagement_level: Any) -> int:
    level = _enum_value(engagement_level)
    if not isinstance(level, str):
        return DEFAULT_ENGAGEMENT_SCORE
    return ENGAGEMENT_SCORES.get(level, DEFAULT_ENGAGEMENT_SCORE)


def has_executive_title(title: Any) -> bool:
    if not isinstance(title, str):
        return False
    lowered = title.lower()
    return any(keyword in lowered for keyword in EXECUTIVE_TITLE_KEYWORDS)


def budget_fit_score(title: Any, size_score: int) -> int:
    """
    20 when the title is executive AND the company is 51+ people (size score ≥ 25),
    18 when only one of: executive title, company of 11+ (size score ≥ 20),
    15 otherwise.
    """
    executive = has_executive_title(title)
    if executive and size_score >= 25:
        return 20
    if executive or size_score >= 20:
        return 18
    return 15


def calculate_score(lead: Any) -> ScoreResult:
    """
    Score a lead.

    Args:
        lead: A mapping or an object exposing company_size, industry,
              engagement_level and title. Missing values are allowed.

    Returns:
        ScoreResult whose total_score always equals the breakdown sum.
    """
    size = company_size_score(_field(lead, "company_size"))
    breakdown = ScoreBreakdown(
        company_size_score=size,
        industry_fit_score=industry_fit_score(_field(lead, "industry")),
        engagement_score=engagement_score(_field(lead, "engagement_level")),
        budget_fit_score=budget_fit_score(_field(lead, "title"), size),
    )
    result = ScoreResult(total_score=breakdown.total(), breakdown=breakdown)
    logger.debug("Scored lead: total=%d breakdown=%s", result.total_score, breakdown)
    return result


def initial_status(total_score: int) -> LeadStatus:
    """Status a lead starts with, derived from its score at creation time."""
    if total_score >= settings.qualified_score_threshold:
        return LeadStatus.QUALIFIED
    if total_score >= settings.nurturing_score_threshold:
        return LeadStatus.NURTURING
    return LeadStatus.NEW
