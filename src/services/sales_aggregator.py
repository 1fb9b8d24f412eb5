"""
Sales aggregation: turns raw per-day, per-branch, per-product order counts into
per-product sales records (totals, per-branch, per-group, daily series, trends)
and popularity tiers.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import pandas as pd

from src.models.data_loader import orders_to_frame
from src.models.sales import (
    AggregationResult,
    BranchGroup,
    DailySalesPoint,
    DayAmount,
    ProductIdentity,
    ProductSalesRecord,
    ProductTierGroups,
    RestrictionTag,
    TrendSummary,
)
from src.utils.helpers import (
    calculate_percentage_change,
    date_sort_key,
    normalize_product_name,
    parse_quantity,
)

logger = logging.getLogger(__name__)


def tier_for_total(total: float, thresholds: Optional[List[Tuple[str, float]]] = None) -> str:
    """Tier A..E for a total (A: >=500, B: 200-499, C: 100-199, D: 50-99, E: <50)."""
    if thresholds is None:
        from config.settings import TIER_THRESHOLDS
        thresholds = TIER_THRESHOLDS
    for tier, lower in thresholds:
        if total >= lower:
            return tier
    return thresholds[-1][0]


def assign_tiers(sales_by_product: Mapping[str, ProductSalesRecord]) -> ProductTierGroups:
    tiers = ProductTierGroups()
    for name, record in sales_by_product.items():
        tiers.bucket(tier_for_total(record.total)).append(name)
    return tiers


def track_extremes(points: Iterable[DailySalesPoint]) -> Tuple[Optional[DayAmount], Optional[DayAmount]]:
    """
    Highest and lowest contribution, scanned in insertion order.
    Ties go to the later date for the maximum and the earlier date for the minimum.
    """
    max_day = DayAmount("", 0.0)
    min_day = DayAmount("", float("inf"))
    seen = False
    for point in points:
        seen = True
        key = date_sort_key(point.date)
        if point.amount > max_day.amount or (
            point.amount == max_day.amount and key > date_sort_key(max_day.date)
        ):
            max_day = DayAmount(point.date, point.amount)
        if point.amount < min_day.amount or (
            point.amount == min_day.amount and key < date_sort_key(min_day.date)
        ):
            min_day = DayAmount(point.date, point.amount)
    if not seen:
        return None, None
    return max_day, min_day


def growth_percent(first: float, last: float) -> float:
    """Growth from the first to the last daily amount; 0 when the first amount is 0."""
    try:
        return calculate_percentage_change(first, last)
    except ValueError:
        return 0.0


class SalesAggregator:
    """
    Aggregates raw orders for a date range.
    Holds no state between calls; the branch group registry is read-only here.
    """

    def __init__(
        self,
        branch_groups,
        restriction_rules: Optional[List[Dict[str, str]]] = None,
        category_rules: Optional[List[Tuple[str, str]]] = None,
    ):
        """
        Args:
            branch_groups: BranchGroupRegistry used for group membership.
            restriction_rules: [{match: exact|contains, pattern, tag}]; defaults to settings.
            category_rules: [(substring, category)]; defaults to settings.
        """
        from config.settings import RESTRICTION_RULES, CATEGORY_RULES, DEFAULT_CATEGORY
        self.branch_groups = branch_groups
        self.restriction_rules = RESTRICTION_RULES if restriction_rules is None else restriction_rules
        self.category_rules = CATEGORY_RULES if category_rules is None else category_rules
        self.default_category = DEFAULT_CATEGORY

    def determine_category(self, normalized_name: str) -> str:
        for fragment, category in self.category_rules:
            if fragment in normalized_name:
                return category
        return self.default_category

    def get_restrictions(self, normalized_name: str) -> Set[RestrictionTag]:
        tags = set()
        for rule in self.restriction_rules:
            pattern = normalize_product_name(rule["pattern"])
            if rule["match"] == "exact":
                matched = normalized_name == pattern
            else:
                matched = pattern in normalized_name
            if matched:
                tags.add(RestrictionTag(rule["tag"]))
        return tags

    def identify(self, product: str) -> ProductIdentity:
        normalized = normalize_product_name(product)
        return ProductIdentity(
            display_name=product,
            normalized_name=normalized,
            category=self.determine_category(normalized),
            restrictions=self.get_restrictions(normalized),
        )

    def is_permitted(self, identity: ProductIdentity, group: BranchGroup) -> bool:
        """A restricted product only counts at branches of its allowed group."""
        return all(tag.allowed_group == group for tag in identity.restrictions)

    def aggregate(self, raw_orders: Any) -> AggregationResult:
        """
        Aggregate nested orders (date -> branch -> product -> quantity).
        Malformed quantities and restricted contributions are skipped; never raises.
        """
        try:
            return self._aggregate(orders_to_frame(raw_orders))
        except Exception:
            logger.exception("Order aggregation failed; returning empty result")
            return AggregationResult()

    def _aggregate(self, frame: pd.DataFrame) -> AggregationResult:
        result = AggregationResult()
        if frame.empty:
            return result
        sales = result.sales_by_product

        frame = frame.copy()
        frame["normalized"] = frame["product"].map(normalize_product_name)
        for row in frame.drop_duplicates("normalized").itertuples(index=False):
            sales[row.normalized] = ProductSalesRecord(identity=self.identify(row.product))

        parsed = frame["quantity"].map(parse_quantity)
        valid = parsed.map(lambda p: p.ok).astype(bool)
        for row, p in zip(frame[~valid].itertuples(index=False), parsed[~valid]):
            logger.debug("Skipping %s @ %s on %s: %s", row.product, row.branch, row.date, p.reason)
        frame = frame[valid].copy()
        frame["amount"] = [p.value for p in parsed[valid]]

        frame["group"] = frame["branch"].map(self.branch_groups.membership)
        permitted = pd.Series(
            [self.is_permitted(sales[n].identity, g) for n, g in zip(frame["normalized"], frame["group"])],
            index=frame.index,
            dtype=bool,
        )
        dropped = int((~permitted).sum())
        if dropped:
            logger.debug("Dropped %d contribution(s) outside their product's branch group", dropped)
        frame = frame[permitted]

        for normalized, rows in frame.groupby("normalized", sort=False):
            self._fill_record(sales[normalized], rows)

        result.tiers = assign_tiers(sales)
        logger.info(
            "Aggregated %d product(s) from %d counted order line(s), %d skipped",
            len(sales), len(frame), int((~valid).sum()) + dropped,
        )
        return result

    def _fill_record(self, record: ProductSalesRecord, rows: pd.DataFrame) -> None:
        by_branch = rows.groupby("branch", sort=False)["amount"].sum()
        record.by_branch = {str(branch): float(amount) for branch, amount in by_branch.items()}
        record.total = float(sum(record.by_branch.values()))
        for branch, amount in record.by_branch.items():
            record.by_group.add(self.branch_groups.membership(branch), amount)

        points = [
            DailySalesPoint(date=row.date, amount=float(row.amount), branch=row.branch)
            for row in rows.itertuples(index=False)
        ]
        max_day, min_day = track_extremes(points)
        record.daily = sorted(points, key=lambda p: date_sort_key(p.date))
        record.trends = self.calculate_trends(record.daily, max_day, min_day)

    @staticmethod
    def calculate_trends(
        daily: List[DailySalesPoint],
        max_day: Optional[DayAmount] = None,
        min_day: Optional[DayAmount] = None,
    ) -> TrendSummary:
        """Average and first-to-last growth over a chronologically sorted series."""
        trends = TrendSummary(max_day=max_day, min_day=min_day)
        if not daily:
            return trends
        amounts = pd.Series([p.amount for p in daily], dtype=float)
        trends.average = float(amounts.mean())
        if len(daily) > 1:
            trends.growth_percent = growth_percent(daily[0].amount, daily[-1].amount)
        return trends
