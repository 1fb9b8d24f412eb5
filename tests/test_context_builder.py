"""
Tests for the grounding context and prompt builder.
Run from project root: pytest tests/test_context_builder.py -v
"""

import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.models.sales import DateRange
from src.services.context_builder import GroundingContextBuilder, determine_question_type
from src.services.sales_aggregator import SalesAggregator


@pytest.fixture
def builder(branch_groups):
    return GroundingContextBuilder(branch_groups, response_language="English")


@pytest.fixture
def aggregated(branch_groups, raw_orders):
    return SalesAggregator(branch_groups).aggregate(raw_orders)


@pytest.fixture
def context(builder, aggregated):
    return builder.build_context(aggregated.sales_by_product, aggregated.tiers)


class TestBuildContext:
    def test_ranking_descending_with_two_decimals(self, context):
        assert "[01] San Sebastian: 38.00" in context
        assert "[02] Şokolad: 7.00" in context
        assert "[03] Şokolad lokumlu: 7.00" in context  # tie keeps iteration order
        assert "[04] Profiterol: 4.50" in context

    def test_tier_buckets(self, context):
        assert "- A (500+): -" in context
        assert "- E (under 50): San Sebastian, Profiterol, Şokolad, Şokolad lokumlu" in context

    def test_branch_breakdown_split_by_group(self, context):
        block = context.split("#### San Sebastian")[1].split("####")[0]
        next_part = block.split("- Next branches:")[1].split("- Coffemania branches:")[0]
        coffemania_part = block.split("- Coffemania branches:")[1]
        assert "Next Mərkəz: 10.00" in next_part
        assert "Next City Mall: 20.00" in next_part
        assert "Coffemania Gəncə: 6.00" in coffemania_part
        assert "Warehouse" not in block
        assert "- Next group: 30.00" in block
        assert "- Coffemania group: 6.00" in block

    def test_trend_summary(self, context):
        block = context.split("#### San Sebastian")[1].split("####")[0]
        assert "- Highest day: 2024-01-02 (20.00)" in block
        assert "- Lowest day: 2024-01-02 (2.00)" in block
        assert "- Average per sale: 9.50" in block
        assert "- Growth (first to last sale): -80.00%" in block

    def test_rosters(self, context):
        assert "- Next (2): Next Mərkəz, Next City Mall" in context
        assert "- Coffemania (2): Coffemania Gəncə, Coffemania Azadlıq" in context

    def test_restrictions_rendered_from_tags(self, context):
        assert "Şokolad is sold only at Coffemania branches; it is not sold at Next branches." in context
        assert "Şokolad lokumlu is sold only at Next branches; it is not sold at Coffemania branches." in context

    def test_deterministic(self, builder, aggregated, context):
        assert builder.build_context(aggregated.sales_by_product, aggregated.tiers) == context

    def test_empty_data(self, builder, aggregated):
        empty = builder.build_context({}, type(aggregated.tiers)())
        assert "No sales in this period." in empty
        assert "No product restrictions apply" in empty


class TestBuildPrompt:
    def test_short_range_widened_in_place(self, builder):
        date_range = DateRange("2024-03-25", "2024-03-31")
        prompt, effective = builder.build_prompt("ctx", "Ən çox satılan məhsul?", date_range)
        assert effective is date_range
        assert date_range.start_date == "2024-03-01"
        assert "Analysis period: 2024-03-01 - 2024-03-31 (30 days)" in prompt

    @pytest.mark.parametrize("start", ["2024-03-31", "2024-03-02", "2024-03-01", "2023-12-01"])
    def test_effective_range_at_least_30_days(self, builder, start):
        _, effective = builder.build_prompt("ctx", "q", DateRange(start, "2024-03-31"))
        assert effective.day_difference >= 30

    def test_day_first_range_normalized(self, builder):
        date_range = DateRange("01.01.2024", "31.01.2024")
        prompt, effective = builder.build_prompt("ctx", "q", date_range)
        assert (effective.start_date, effective.end_date) == ("2024-01-01", "2024-01-31")
        assert "Analysis period: 2024-01-01 - 2024-01-31 (30 days)" in prompt

    def test_day_first_short_range_widened(self, builder):
        _, effective = builder.build_prompt("ctx", "q", DateRange("25.03.2024", "31.03.2024"))
        assert (effective.start_date, effective.end_date) == ("2024-03-01", "2024-03-31")

    def test_unparseable_range_uses_last_30_days(self, builder):
        prompt, effective = builder.build_prompt(
            "ctx", "q", DateRange("not-a-date", "31.02.2024"), today=date(2024, 3, 31)
        )
        assert (effective.start_date, effective.end_date) == ("2024-03-01", "2024-03-31")
        assert "Analysis period: 2024-03-01 - 2024-03-31 (30 days)" in prompt

    def test_long_range_untouched(self, builder):
        _, effective = builder.build_prompt("ctx", "q", DateRange("2024-01-01", "2024-03-31"))
        assert effective.start_date == "2024-01-01"

    def test_prompt_section_order(self, builder):
        prompt, _ = builder.build_prompt("CONTEXT-BLOCK", "USER-QUESTION", DateRange("2024-01-01", "2024-03-31"))
        positions = [prompt.index(s) for s in ("CONTEXT-BLOCK", "USER-QUESTION", "Analysis period:", "Formatting rules:")]
        assert positions == sorted(positions)
        assert "[01], [02]" in prompt
        assert '"not sold"' in prompt
        assert "respond in English" in prompt


class TestQuestionType:
    @pytest.mark.parametrize("question, expected", [
        ("Neçə filial var?", "basic"),
        ("Next və Coffemania filiallarını müqayisə et", "comparison"),
        ("Show the sales trend of Profiterol", "analysis"),
        ("Satışları artırmaq üçün nə təklif edərsən?", "recommendation"),
        ("Salam", "basic"),
    ])
    def test_keywords(self, question, expected):
        assert determine_question_type(question) == expected
