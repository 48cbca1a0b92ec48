"""
Point Ledger — earned, spent and converted points per category.

Categories:
- attributes, skills, hindrances: have their own earned counters
- edges, wealth: funded only by converting hindrance points

Conversion counters hold units of the TARGET category; the hindrance points
they consumed are `units * rate` from the exchange table.

INVARIANTS:
- For every category, spent <= earned + converted_in
- Hindrance points converted out count against the hindrance category
- Every rejected operation leaves the ledger unchanged
"""

from dataclasses import dataclass
from enum import Enum

from rankforge.constants import (
    ATTRIBUTE_HINDRANCE_POINT_COST,
    EDGE_HINDRANCE_POINT_COST,
    SKILL_HINDRANCE_POINT_COST,
    WEALTH_HINDRANCE_POINT_COST,
)
from rankforge.models.failure import FailureKind, RuleValidationError


class Category(str, Enum):
    """Point categories tracked by the ledger."""

    ATTRIBUTES = "attributes"
    SKILLS = "skills"
    HINDRANCES = "hindrances"
    EDGES = "edges"
    WEALTH = "wealth"


# Hindrance points per unit of the target category
EXCHANGE_RATES: dict[Category, int] = {
    Category.ATTRIBUTES: ATTRIBUTE_HINDRANCE_POINT_COST,
    Category.SKILLS: SKILL_HINDRANCE_POINT_COST,
    Category.EDGES: EDGE_HINDRANCE_POINT_COST,
    Category.WEALTH: WEALTH_HINDRANCE_POINT_COST,
}

_EARNED_FIELDS: dict[Category, str] = {
    Category.ATTRIBUTES: "attribute_points_earned",
    Category.SKILLS: "skill_points_earned",
    Category.HINDRANCES: "hindrance_points_earned",
}

_SPENT_FIELDS: dict[Category, str] = {
    Category.ATTRIBUTES: "attribute_points_spent",
    Category.SKILLS: "skill_points_spent",
    Category.HINDRANCES: "hindrance_points_spent",
    Category.EDGES: "edge_points_spent",
    Category.WEALTH: "wealth_points_spent",
}

_CONVERSION_FIELDS: dict[Category, str] = {
    Category.ATTRIBUTES: "hindrance_points_to_attributes",
    Category.SKILLS: "hindrance_points_to_skills",
    Category.EDGES: "hindrance_points_to_edges",
    Category.WEALTH: "hindrance_points_to_wealth",
}


@dataclass
class PointLedger:
    """Point counters embedded in a character draft."""

    attribute_points_earned: int = 0
    attribute_points_spent: int = 0
    skill_points_earned: int = 0
    skill_points_spent: int = 0
    hindrance_points_earned: int = 0
    hindrance_points_spent: int = 0
    hindrance_points_to_edges: int = 0
    hindrance_points_to_attributes: int = 0
    hindrance_points_to_skills: int = 0
    hindrance_points_to_wealth: int = 0
    edge_points_spent: int = 0
    wealth_points_spent: int = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def earned(self, category: Category) -> int:
        field_name = _EARNED_FIELDS.get(category)
        return getattr(self, field_name) if field_name else 0

    def spent(self, category: Category) -> int:
        return getattr(self, _SPENT_FIELDS[category])

    def converted_in(self, category: Category) -> int:
        """Units of `category` bought with hindrance points."""
        field_name = _CONVERSION_FIELDS.get(category)
        return getattr(self, field_name) if field_name else 0

    def hindrance_points_converted(self) -> int:
        """Hindrance points consumed by all conversions."""
        return sum(self.converted_in(cat) * rate for cat, rate in EXCHANGE_RATES.items())

    def available(self, category: Category) -> int:
        total = self.earned(category) + self.converted_in(category) - self.spent(category)
        if category == Category.HINDRANCES:
            total -= self.hindrance_points_converted()
        return total

    def overspent_categories(self) -> list[Category]:
        """Categories whose spending exceeds what funds them."""
        return [cat for cat in Category if self.available(cat) < 0]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def spend(self, category: Category, amount: int) -> None:
        """
        Debit points from a category.

        Raises:
            RuleValidationError: If amount exceeds what is available
        """
        _require_non_negative(amount)
        available = self.available(category)
        if amount > available:
            raise RuleValidationError(
                f"Not enough {category.value} points: need {amount}, have {available}",
                kind=FailureKind.INSUFFICIENT_POINTS,
            )
        self._add(_SPENT_FIELDS[category], amount)

    def refund(self, category: Category, amount: int) -> None:
        """
        Credit back previously spent points.

        Raises:
            RuleValidationError: If refunding more than was spent
        """
        _require_non_negative(amount)
        spent = self.spent(category)
        if amount > spent:
            raise RuleValidationError(
                f"Cannot refund {amount} {category.value} points; only {spent} spent",
                kind=FailureKind.INVALID_INPUT,
            )
        self._add(_SPENT_FIELDS[category], -amount)

    def convert(self, amount: int, to_category: Category) -> None:
        """
        Convert hindrance points into `amount` units of another category.

        A negative amount deallocates a prior conversion.

        Raises:
            RuleValidationError: On an unsupported target, not enough hindrance
                points, over-deallocation, or a deallocation that would leave
                the target category overspent
        """
        if to_category not in EXCHANGE_RATES:
            raise RuleValidationError(
                f"Hindrance points cannot be converted to {to_category.value}",
                kind=FailureKind.INVALID_INPUT,
            )
        if amount == 0:
            return

        rate = EXCHANGE_RATES[to_category]
        field_name = _CONVERSION_FIELDS[to_category]

        if amount > 0:
            cost = amount * rate
            available = self.available(Category.HINDRANCES)
            if cost > available:
                raise RuleValidationError(
                    f"Not enough hindrance points: {amount} {to_category.value} "
                    f"costs {cost}, have {available}",
                    kind=FailureKind.INSUFFICIENT_POINTS,
                )
            self._add(field_name, amount)
            return

        allocated = self.converted_in(to_category)
        if -amount > allocated:
            raise RuleValidationError(
                f"Cannot deallocate {-amount} {to_category.value}; only {allocated} allocated",
                kind=FailureKind.INVALID_INPUT,
            )
        remaining = self.earned(to_category) + allocated + amount
        if self.spent(to_category) > remaining:
            raise RuleValidationError(
                f"Cannot deallocate {-amount} {to_category.value}: "
                f"{self.spent(to_category)} already spent",
                kind=FailureKind.INSUFFICIENT_POINTS,
                suggestion=f"Refund some {to_category.value} first.",
            )
        self._add(field_name, amount)

    def earn(self, category: Category, amount: int) -> None:
        """Add to a category's earned counter (e.g. taking a hindrance)."""
        _require_non_negative(amount)
        self._add(self._earned_field(category), amount)

    def forfeit(self, category: Category, amount: int) -> None:
        """
        Remove earned points (e.g. buying off a hindrance).

        Raises:
            RuleValidationError: If amount exceeds what was earned, or the
                points are already spent or converted
        """
        _require_non_negative(amount)
        earned = self.earned(category)
        if amount > earned:
            raise RuleValidationError(
                f"Cannot forfeit {amount} {category.value} points; only {earned} earned",
                kind=FailureKind.INSUFFICIENT_POINTS,
            )
        available = self.available(category)
        if amount > available:
            raise RuleValidationError(
                f"Cannot forfeit {amount} {category.value} points; "
                f"only {max(0, available)} are unspent",
                kind=FailureKind.INSUFFICIENT_POINTS,
                suggestion=f"Free up {category.value} points first.",
            )
        self._add(self._earned_field(category), -amount)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _earned_field(self, category: Category) -> str:
        if category not in _EARNED_FIELDS:
            raise RuleValidationError(
                f"{category.value} points are only funded by hindrance points",
                kind=FailureKind.INVALID_INPUT,
            )
        return _EARNED_FIELDS[category]

    def _add(self, field_name: str, delta: int) -> None:
        setattr(self, field_name, getattr(self, field_name) + delta)


def _require_non_negative(amount: int) -> None:
    if amount < 0:
        raise RuleValidationError(
            f"Point amount must not be negative, got {amount}",
            kind=FailureKind.INVALID_INPUT,
        )
