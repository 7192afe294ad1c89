"""
tests/test_scoring.py — Unit tests for lead qualification scoring.

Pure functions only; no database is touched.
"""

import pytest

from crm.db.models import EngagementLevel, LeadStatus
from crm.services.scoring import (
    ScoreBreakdown,
    budget_fit_score,
    calculate_score,
    company_size_score,
    engagement_score,
    has_executive_title,
    industry_fit_score,
    initial_status,
)


# ── Sub-scores ────────────────────────────────────────────────────────────────

class TestCompanySizeScore:
    @pytest.mark.parametrize("size, expected", [
        ("500+", 30),
        ("201-500", 28),
        ("51-200", 25),
        ("11-50", 20),
        ("1-10", 15),
    ])
    def test_known_buckets(self, size, expected):
        assert company_size_score(size) == expected

    def test_unknown_bucket_gets_default(self):
        assert company_size_score("huge") == 10

    def test_missing_size_gets_default(self):
        assert company_size_score(None) == 10

    def test_unhashable_input_does_not_raise(self):
        assert company_size_score(["500+"]) == 10


class TestIndustryFitScore:
    def test_high_fit(self):
        assert industry_fit_score("SaaS") == 22

    def test_medium_fit(self):
        assert industry_fit_score("Healthcare") == 18

    def test_low_fit(self):
        assert industry_fit_score("Non-profit") == 14

    def test_unclassified_industry_sits_between_medium_and_low(self):
        assert industry_fit_score("Aerospace") == 16
        assert industry_fit_score(None) == 16

    def test_match_is_case_sensitive(self):
        assert industry_fit_score("technology") == 16


class TestEngagementScore:
    def test_levels(self):
        assert engagement_score("High") == 20
        assert engagement_score("Medium") == 15
        assert engagement_score("Low") == 10

    def test_accepts_enum_members(self):
        assert engagement_score(EngagementLevel.HIGH) == 20

    def test_unknown_level_gets_default(self):
        assert engagement_score("Very High") == 12
        assert engagement_score(None) == 12


class TestBudgetFit:
    @pytest.mark.parametrize("title", ["CEO", "Chief CTO", "VP Sales", "Director of IT", "Head of Growth"])
    def test_executive_titles(self, title):
        assert has_executive_title(title) is True

    def test_title_match_is_case_insensitive(self):
        assert has_executive_title("vp of engineering") is True

    def test_non_executive_title(self):
        assert has_executive_title("Analyst") is False
        assert has_executive_title(None) is False

    def test_executive_at_large_company(self):
        assert budget_fit_score("CTO", 25) == 20

    def test_executive_at_small_company(self):
        assert budget_fit_score("CEO", 15) == 18

    def test_non_executive_at_mid_size_company(self):
        assert budget_fit_score("Engineer", 20) == 18

    def test_non_executive_at_small_company(self):
        assert budget_fit_score("Engineer", 15) == 15


# ── calculate_score ───────────────────────────────────────────────────────────

class TestCalculateScore:
    def test_ideal_enterprise_lead(self):
        result = calculate_score({
            "company_size": "500+",
            "industry": "Technology",
            "engagement_level": "High",
            "title": "CTO",
        })
        assert result.breakdown == ScoreBreakdown(30, 22, 20, 20)
        assert result.total_score == 92
        assert initial_status(result.total_score) == LeadStatus.QUALIFIED

    def test_small_retail_lead(self):
        result = calculate_score({
            "company_size": "1-10",
            "industry": "Retail",
            "engagement_level": "Low",
            "title": "Analyst",
        })
        assert result.breakdown == ScoreBreakdown(15, 14, 10, 15)
        assert result.total_score == 54
        assert initial_status(result.total_score) == LeadStatus.NEW

    def test_empty_lead_scores_defaults(self):
        result = calculate_score({})
        assert result.total_score == 10 + 16 + 12 + 15

    def test_total_always_equals_breakdown_sum(self):
        for lead in (
            {"company_size": "51-200", "industry": "Finance", "engagement_level": "Medium", "title": "Head of Ops"},
            {"company_size": "bogus", "industry": 42, "engagement_level": None},
        ):
            result = calculate_score(lead)
            assert result.total_score == sum(result.breakdown.as_dict().values())
            assert 0 <= result.total_score <= 100

    def test_accepts_objects_as_well_as_mappings(self):
        class LeadLike:
            company_size = "11-50"
            industry = "Software"
            engagement_level = "Medium"
            title = "Developer"

        assert calculate_score(LeadLike()).total_score == 20 + 22 + 15 + 18

    def test_deterministic(self):
        lead = {"company_size": "201-500", "industry": "Manufacturing", "engagement_level": "High", "title": "VP"}
        assert calculate_score(lead) == calculate_score(lead)


class TestInitialStatus:
    def test_thresholds(self):
        assert initial_status(100) == LeadStatus.QUALIFIED
        assert initial_status(80) == LeadStatus.QUALIFIED
        assert initial_status(79) == LeadStatus.NURTURING
        assert initial_status(60) == LeadStatus.NURTURING
        assert initial_status(59) == LeadStatus.NEW
        assert initial_status(0) == LeadStatus.NEW
