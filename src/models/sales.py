"""
Sales data models shared by the aggregator, context builder and validator.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Set


class BranchGroup(str, Enum):
    """Branch group a branch belongs to."""
    NEXT = "next"
    COFFEMANIA = "coffemania"
    NONE = "none"


class RestrictionTag(str, Enum):
    """Pins a product's valid sales to one branch group."""
    ONLY_NEXT = "only_next"
    ONLY_COFFEMANIA = "only_coffemania"

    @property
    def allowed_group(self) -> BranchGroup:
        if self is RestrictionTag.ONLY_NEXT:
            return BranchGroup.NEXT
        return BranchGroup.COFFEMANIA


@dataclass
class ProductIdentity:
    display_name: str
    normalized_name: str
    category: str
    restrictions: Set[RestrictionTag] = field(default_factory=set)


@dataclass
class DailySalesPoint:
    """One contribution event: amount sold at a branch on a date."""
    date: str
    amount: float
    branch: str


@dataclass
class DayAmount:
    date: str
    amount: float


@dataclass
class TrendSummary:
    max_day: Optional[DayAmount] = None
    min_day: Optional[DayAmount] = None
    average: float = 0.0
    growth_percent: float = 0.0


@dataclass
class GroupTotals:
    next: float = 0.0
    coffemania: float = 0.0

    def add(self, group: BranchGroup, amount: float) -> None:
        group = BranchGroup(group)
        if group is BranchGroup.NEXT:
            self.next += amount
        elif group is BranchGroup.COFFEMANIA:
            self.coffemania += amount


@dataclass
class ProductSalesRecord:
    """
    Aggregated sales for one normalized product.
    total always equals the sum of by_branch; by_group only counts branches
    that belong to a known group.
    """
    identity: ProductIdentity
    total: float = 0.0
    by_branch: Dict[str, float] = field(default_factory=dict)
    by_group: GroupTotals = field(default_factory=GroupTotals)
    daily: List[DailySalesPoint] = field(default_factory=list)
    trends: TrendSummary = field(default_factory=TrendSummary)

    def to_dict(self) -> dict:
        return {
            "name": self.identity.display_name,
            "normalized_name": self.identity.normalized_name,
            "category": self.identity.category,
            "restrictions": sorted(tag.value for tag in self.identity.restrictions),
            "total": self.total,
            "by_branch": dict(self.by_branch),
            "by_group": {"next": self.by_group.next, "coffemania": self.by_group.coffemania},
            "daily": [{"date": p.date, "amount": p.amount, "branch": p.branch} for p in self.daily],
            "trends": {
                "max_day": vars(self.trends.max_day) if self.trends.max_day else None,
                "min_day": vars(self.trends.min_day) if self.trends.min_day else None,
                "average": self.trends.average,
                "growth_percent": self.trends.growth_percent,
            },
        }


TIER_NAMES = ("A", "B", "C", "D", "E")


@dataclass
class ProductTierGroups:
    """Normalized product names bucketed by total sold (A highest)."""
    A: List[str] = field(default_factory=list)
    B: List[str] = field(default_factory=list)
    C: List[str] = field(default_factory=list)
    D: List[str] = field(default_factory=list)
    E: List[str] = field(default_factory=list)

    def bucket(self, tier: str) -> List[str]:
        return getattr(self, tier)

    def to_dict(self) -> Dict[str, List[str]]:
        return {tier: list(self.bucket(tier)) for tier in TIER_NAMES}


@dataclass
class AggregationResult:
    sales_by_product: Dict[str, ProductSalesRecord] = field(default_factory=dict)
    tiers: ProductTierGroups = field(default_factory=ProductTierGroups)


@dataclass
class DateRange:
    """
    Inclusive analysis window. Bounds are read in any format parse_date accepts
    (YYYY-MM-DD, DD.MM.YYYY, DD/MM/YYYY); normalize() rewrites them as ISO.
    """
    start_date: str
    end_date: str

    @staticmethod
    def _parse(value) -> date:
        from src.utils.helpers import parse_date
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Unparseable date: {value!r}")
        return parsed

    @property
    def start(self) -> date:
        return self._parse(self.start_date)

    @property
    def end(self) -> date:
        return self._parse(self.end_date)

    @property
    def day_difference(self) -> int:
        """Calendar days between start and end. Raises ValueError on bad dates."""
        return (self.end - self.start).days

    def normalize(self) -> None:
        """Rewrite both bounds as YYYY-MM-DD. Raises ValueError on bad dates."""
        start, end = self.start, self.end
        self.start_date, self.end_date = start.isoformat(), end.isoformat()

    def widen_to(self, min_days: int) -> None:
        """Move start_date back so the window spans at least min_days."""
        if self.day_difference < min_days:
            self.start_date = (self.end - timedelta(days=min_days)).isoformat()

    def to_dict(self) -> Dict[str, str]:
        return {"startDate": self.start_date, "endDate": self.end_date}


@dataclass
class ValidationResult:
    """Outcome of the response heuristics. passed = gate and any sub-check."""
    date_range_ok: bool
    number_accuracy: bool = True
    percentage_sanity: bool = True
    branch_comparison: bool = True
    restriction_compliance: bool = True

    @property
    def passed(self) -> bool:
        if not self.date_range_ok:
            return False
        return (
            self.number_accuracy
            or self.percentage_sanity
            or self.branch_comparison
            or self.restriction_compliance
        )

    def to_dict(self) -> Dict[str, bool]:
        return {
            "date_range_ok": self.date_range_ok,
            "number_accuracy": self.number_accuracy,
            "percentage_sanity": self.percentage_sanity,
            "branch_comparison": self.branch_comparison,
            "restriction_compliance": self.restriction_compliance,
            "passed": self.passed,
        }
