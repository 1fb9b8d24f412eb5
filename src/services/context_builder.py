"""
Grounding context for the text model.
Serializes aggregated sales (ranking, tiers, per-product and per-branch breakdown,
trends, branch rosters, restrictions) into a deterministic text block and wraps it
with the user question and formatting rules into a single prompt.
"""

import logging
from datetime import date
from typing import List, Mapping, Optional, Tuple

from src.models.sales import (
    TIER_NAMES,
    BranchGroup,
    DateRange,
    ProductSalesRecord,
    ProductTierGroups,
    RestrictionTag,
)
from src.utils.helpers import format_amount, normalize_date_range

logger = logging.getLogger(__name__)

GROUP_LABELS = {
    BranchGroup.NEXT: "Next",
    BranchGroup.COFFEMANIA: "Coffemania",
}

QUESTION_KEYWORDS = {
    "basic": ["neçə", "hansı", "nə qədər", "nə zaman", "harada", "how many", "how much", "which", "when", "where"],
    "comparison": ["müqayisə", "fərq", "daha çox", "ən çox", "ən az", "compare", "difference", "versus", " vs "],
    "analysis": ["təhlil", "analiz", "trend", "inkişaf", "dəyişim", "analysis", "growth", "change"],
    "recommendation": ["təklif", "tövsiyə", "nə etməli", "necə", "yaxşılaşdırma", "suggest", "recommend", "improve"],
}

QUESTION_INSTRUCTIONS = {
    "basic": "Answer simply and directly. Show the exact numbers.",
    "comparison": "Give a comparative analysis. Highlight differences and similarities.",
    "analysis": "Analyse in depth. Explain the trends and what drives them.",
    "recommendation": "Give concrete suggestions based on the analysis and justify each one.",
}

FORMATTING_RULES = """Formatting rules:
1. Number every ranking entry as [01], [02], [03] and so on.
2. Write every quantity with exactly two decimal digits (for example 12.50). Copy values from the context; do not round them.
3. Keep Next and Coffemania branches in separate sections. Never mix branches of the two groups in one list.
4. When a product that is restricted to one branch group is relevant to the answer, state that it is "not sold" at the other group's branches.
5. Use only numbers that appear in the context. If the data needed for an answer is missing, say so."""


def determine_question_type(question: str) -> str:
    """basic | comparison | analysis | recommendation, by keyword; basic when nothing matches."""
    lowered = f" {question.lower()} "
    for question_type, words in QUESTION_KEYWORDS.items():
        if any(word in lowered for word in words):
            return question_type
    return "basic"


def _tier_labels() -> dict:
    from config.settings import TIER_THRESHOLDS
    labels = {}
    upper = None
    for tier, lower in TIER_THRESHOLDS:
        if upper is None:
            labels[tier] = f"{lower:g}+"
        elif lower == float("-inf"):
            labels[tier] = f"under {upper:g}"
        else:
            labels[tier] = f"{lower:g}-{upper - 1:g}"
        upper = lower
    return labels


class GroundingContextBuilder:
    """Builds the grounding context and the prompt. Stateless apart from configuration."""

    def __init__(self, branch_groups, min_days: Optional[int] = None, response_language: Optional[str] = None):
        from config.settings import MIN_ANALYSIS_DAYS, RESPONSE_LANGUAGE
        self.branch_groups = branch_groups
        self.min_days = MIN_ANALYSIS_DAYS if min_days is None else min_days
        self.response_language = response_language or RESPONSE_LANGUAGE

    def build_context(
        self,
        sales_by_product: Mapping[str, ProductSalesRecord],
        tiers: ProductTierGroups,
    ) -> str:
        sections = [
            self._ranking_section(sales_by_product),
            self._tier_section(sales_by_product, tiers),
            self._product_section(sales_by_product),
            self._group_totals_section(sales_by_product),
            self._roster_section(),
            self._restriction_section(sales_by_product),
        ]
        context = "\n\n".join(sections)
        logger.debug("Built grounding context for %d product(s), %d chars", len(sales_by_product), len(context))
        return context

    def _ranking_section(self, sales_by_product: Mapping[str, ProductSalesRecord]) -> str:
        lines = ["### Sales ranking (total quantity):"]
        ranked = sorted(sales_by_product.values(), key=lambda r: -r.total)
        for rank, record in enumerate(ranked, 1):
            lines.append(f"[{rank:02d}] {record.identity.display_name}: {format_amount(record.total)}")
        if not ranked:
            lines.append("No sales in this period.")
        return "\n".join(lines)

    def _tier_section(self, sales_by_product: Mapping[str, ProductSalesRecord], tiers: ProductTierGroups) -> str:
        labels = _tier_labels()
        lines = ["### Product tiers:"]
        for tier in TIER_NAMES:
            names = [
                sales_by_product[n].identity.display_name if n in sales_by_product else n
                for n in tiers.bucket(tier)
            ]
            lines.append(f"- {tier} ({labels.get(tier, '')}): {', '.join(names) if names else '-'}")
        return "\n".join(lines)

    def _branch_lines(self, record: ProductSalesRecord, group: BranchGroup) -> List[str]:
        lines = [
            f"  - {branch}: {format_amount(amount)}"
            for branch, amount in record.by_branch.items()
            if self.branch_groups.membership(branch) == group
        ]
        return lines or ["  - none"]

    def _product_section(self, sales_by_product: Mapping[str, ProductSalesRecord]) -> str:
        blocks = ["### Product details:"]
        for record in sales_by_product.values():
            trends = record.trends
            lines = [
                f"#### {record.identity.display_name} ({record.identity.category})",
                f"- Total: {format_amount(record.total)}",
                f"- Next group: {format_amount(record.by_group.next)}",
                f"- Coffemania group: {format_amount(record.by_group.coffemania)}",
                "- Next branches:",
                *self._branch_lines(record, BranchGroup.NEXT),
                "- Coffemania branches:",
                *self._branch_lines(record, BranchGroup.COFFEMANIA),
            ]
            if trends.max_day is not None:
                lines.append(f"- Highest day: {trends.max_day.date} ({format_amount(trends.max_day.amount)})")
            if trends.min_day is not None:
                lines.append(f"- Lowest day: {trends.min_day.date} ({format_amount(trends.min_day.amount)})")
            lines.append(f"- Average per sale: {format_amount(trends.average)}")
            lines.append(f"- Growth (first to last sale): {format_amount(trends.growth_percent)}%")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def _group_totals_section(self, sales_by_product: Mapping[str, ProductSalesRecord]) -> str:
        next_total = sum(r.by_group.next for r in sales_by_product.values())
        coffemania_total = sum(r.by_group.coffemania for r in sales_by_product.values())
        return "\n".join([
            "### Group totals:",
            f"- Next: {format_amount(next_total)}",
            f"- Coffemania: {format_amount(coffemania_total)}",
        ])

    def _roster_section(self) -> str:
        lines = ["### Branches:"]
        for group, label in GROUP_LABELS.items():
            roster = self.branch_groups.roster(group)
            lines.append(f"- {label} ({len(roster)}): {', '.join(roster) if roster else '-'}")
        return "\n".join(lines)

    def _restriction_section(self, sales_by_product: Mapping[str, ProductSalesRecord]) -> str:
        lines = ["### Product restrictions:"]
        for record in sales_by_product.values():
            for tag in sorted(record.identity.restrictions, key=lambda t: t.value):
                allowed = GROUP_LABELS[tag.allowed_group]
                other = GROUP_LABELS[
                    BranchGroup.COFFEMANIA if tag is RestrictionTag.ONLY_NEXT else BranchGroup.NEXT
                ]
                lines.append(
                    f"- {record.identity.display_name} is sold only at {allowed} branches; "
                    f"it is not sold at {other} branches."
                )
        if len(lines) == 1:
            lines.append("- No product restrictions apply to this data.")
        return "\n".join(lines)

    def build_prompt(
        self,
        context: str,
        user_question: str,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> Tuple[str, DateRange]:
        """
        Compose the full prompt. The range is rewritten in place as ISO dates
        (an unparseable range becomes the last min_days days up to today), then a
        window shorter than min_days is widened by moving the start back.
        """
        normalize_date_range(date_range, today=today, default_days=self.min_days)
        original_start = date_range.start_date
        date_range.widen_to(self.min_days)
        if date_range.start_date != original_start:
            logger.info(
                "Analysis window widened: %s -> %s (end %s)",
                original_start, date_range.start_date, date_range.end_date,
            )
        question_type = determine_question_type(user_question)
        language = self.response_language

        prompt = f"""You are the sales analysis assistant of a pastry retailer with two branch groups, Next and Coffemania.
You MUST ALWAYS respond in {language}.

Context information:
{context}

User question: {user_question}

Analysis period: {date_range.start_date} - {date_range.end_date} ({date_range.day_difference} days)

Question type: {question_type}
{QUESTION_INSTRUCTIONS[question_type]}

{FORMATTING_RULES}

Answer (in {language}):
"""
        return prompt, date_range
