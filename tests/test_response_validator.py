"""
Tests for the response plausibility checks.
Run from project root: pytest tests/test_response_validator.py -v
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.models.sales import DateRange, ProductIdentity, ProductSalesRecord
from src.services.response_validator import ResponseValidator
from src.services.sales_aggregator import SalesAggregator

LONG_RANGE = DateRange("2024-01-01", "2024-02-15")  # 45 days


@pytest.fixture
def validator(branch_groups):
    return ResponseValidator(branch_groups)


@pytest.fixture
def sales(branch_groups, raw_orders):
    return SalesAggregator(branch_groups).aggregate(raw_orders).sales_by_product


class TestDateGate:
    def test_short_range_always_fails(self, validator, sales):
        short = DateRange("2024-01-01", "2024-01-11")
        assert validator.validate("San Sebastian: 38.00", sales, short) is False
        assert validator.validate("", sales, short) is False

    def test_unparseable_range_fails(self, validator, sales):
        assert validator.validate("", sales, DateRange("not-a-date", "2024-01-31")) is False

    def test_day_first_range_is_read(self, validator, sales):
        assert validator.validate("", sales, DateRange("01.01.2024", "15.02.2024")) is True

    def test_empty_response_passes_with_long_range(self, validator, sales):
        result = validator.check("", sales, LONG_RANGE)
        assert result.passed
        assert all(result.to_dict().values())


class TestNumberAccuracy:
    def test_number_within_tolerance(self, validator):
        record = ProductSalesRecord(identity=ProductIdentity("Cookie", "cookie", "Other"), total=12.30)
        result = validator.check("Total was 12.34", {"cookie": record}, LONG_RANGE)
        assert result.number_accuracy
        assert validator.validate("Total was 12.34", {"cookie": record}, LONG_RANGE) is True

    def test_any_fact_across_products_counts(self, validator, sales):
        # 20.00 is a daily amount of San Sebastian, the sentence names another product
        assert validator.check_numbers("Profiterol sold 20.00", sales)

    def test_no_matching_number(self, validator, sales):
        assert not validator.check_numbers("San Sebastian sold 123.45", sales)

    def test_no_numbers_passes(self, validator, sales):
        assert validator.check_numbers("San Sebastian sold the most", sales)


class TestPercentageSanity:
    def test_in_bounds(self, validator):
        assert validator.check_percentages("growth of 33.33% and -80.00%")

    @pytest.mark.parametrize("text", ["growth 1500.00%", "drop of -150.00%"])
    def test_out_of_bounds(self, validator, text):
        assert not validator.check_percentages(text)

    def test_none(self, validator):
        assert validator.check_percentages("no percentages here")


class TestBranchComparison:
    def test_no_group_mentioned(self, validator):
        assert validator.check_branch_comparison("Profiterol sold well")

    def test_named_branches_from_both_groups(self, validator):
        assert validator.check_branch_comparison("Next Mərkəz sold more than Coffemania Gəncə")

    def test_generic_reference_needs_both_groups(self, validator):
        assert not validator.check_branch_comparison("Next branches sold 30.00 in total")
        assert validator.check_branch_comparison("Next branches sold 30.00, Coffemania branches 6.00")

    def test_ambiguous_phrasing_passes(self, validator):
        assert validator.check_branch_comparison("Next Mərkəz was the best")


class TestRestrictionCompliance:
    def test_restricted_product_with_other_group(self, validator, sales):
        assert not validator.check_restrictions("Şokolad lokumlu at Coffemania: 0.00", sales)
        assert not validator.check_restrictions("Şokolad sold 8.00 at Next Mərkəz", sales)

    def test_not_sold_phrase_passes(self, validator, sales):
        assert validator.check_restrictions("Şokolad lokumlu is not sold at Coffemania branches", sales)
        assert validator.check_restrictions("Şokolad lokumlu Coffemania filiallarında satılmır", sales)

    def test_allowed_group_passes(self, validator, sales):
        assert validator.check_restrictions("Şokolad sold 4.00 at Coffemania Gəncə", sales)

    def test_longer_name_hides_shorter_product(self, validator, sales):
        # "şokolad" inside "şokolad lokumlu" is not a mention of the coffemania-only product
        assert validator.check_restrictions("Şokolad lokumlu sold 7.00 at Next City Mall", sales)

    def test_both_products_named_separately(self, validator, sales):
        text = "Şokolad lokumlu sold 7.00 at Next City Mall, Şokolad sold 8.00 at Next Mərkəz"
        assert not validator.check_restrictions(text, sales)

    def test_name_inside_another_word_is_ignored(self, validator, sales):
        assert validator.check_restrictions("Şokoladlı tort sold well at Next Mərkəz", sales)


class TestComposition:
    def test_any_passing_check_accepts(self, validator, sales):
        # fails number accuracy, percentages and restriction, but the branch check passes
        text = "Şokolad lokumlu grew 5000.00% at Coffemania Azadlıq: 999.99"
        result = validator.check(text, sales, LONG_RANGE)
        assert not result.number_accuracy
        assert not result.percentage_sanity
        assert not result.restriction_compliance
        assert result.branch_comparison
        assert result.passed

    def test_all_failing_rejects(self, validator, sales):
        text = "Next branches sold Şokolad: 999.99, up 5000.00%"
        result = validator.check(text, sales, LONG_RANGE)
        assert not result.number_accuracy
        assert not result.percentage_sanity
        assert not result.branch_comparison
        assert not result.restriction_compliance
        assert result.passed is False

    def test_check_error_fails_open(self, validator, sales, monkeypatch):
        def boom(*args):
            raise RuntimeError("bad regex")
        monkeypatch.setattr(validator, "check_numbers", boom)
        result = validator.check("Total 999.99", sales, LONG_RANGE)
        assert result.number_accuracy
