"""
Affordability Engine

Turns a financial profile into a housing price ceiling.

Rent: 30% of gross monthly income, further capped by the 36% total
debt-to-income ceiling after existing debts. The tighter cap wins.

Buy: the smaller of the 28% housing ceiling and the remaining 36% DTI
headroom, less a 25% margin for tax/insurance/HOA, converted to a loan
principal on a 30-year fixed mortgage at a credit-tier rate.

All monetary outputs are floored to whole currency units.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .proximity.models import InvalidInputError, PriceRange


# =============================================================================
# Configuration Constants
# =============================================================================

# Debt-to-income ceilings (share of gross monthly income)
HOUSING_EXPENSE_RATIO = 0.28
TOTAL_DEBT_RATIO = 0.36
RENT_INCOME_RATIO = 0.30

# Share of the housing budget available for principal and interest
MORTGAGE_PAYMENT_SHARE = 0.75

# 30-year fixed
LOAN_TERM_MONTHS = 30 * 12

# Affordable range starts at this share of the ceiling
RANGE_FLOOR_SHARE = 0.5

# Down payment bounds (percent)
MIN_DOWN_PAYMENT_PERCENT = 5
MAX_DOWN_PAYMENT_PERCENT = 50
DEFAULT_DOWN_PAYMENT_PERCENT = 20


class InvalidFinancialProfileError(InvalidInputError):
    """Financial inputs outside their accepted ranges."""


class CreditTier(Enum):
    """Credit band with its annual mortgage rate."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def annual_rate(self) -> float:
        return ANNUAL_INTEREST_RATES[self]

    @classmethod
    def from_string(cls, value: str) -> Optional["CreditTier"]:
        """Convert string to CreditTier, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


ANNUAL_INTEREST_RATES = {
    CreditTier.EXCELLENT: 0.055,
    CreditTier.GOOD: 0.065,
    CreditTier.FAIR: 0.075,
    CreditTier.POOR: 0.085,
}


class IncomeType(Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AffordabilityMode(Enum):
    RENT = "rent"
    BUY = "buy"


@dataclass(frozen=True)
class FinancialProfile:
    """
    Inputs to a single affordability calculation.

    `income` is interpreted according to `income_type`; use
    `monthly_income` for the normalised figure.
    """
    income: float
    monthly_debt_obligations: float = 0.0
    credit_tier: CreditTier = CreditTier.GOOD
    down_payment_percent: int = DEFAULT_DOWN_PAYMENT_PERCENT
    income_type: IncomeType = IncomeType.MONTHLY
    mode: AffordabilityMode = AffordabilityMode.RENT

    def __post_init__(self):
        for name in ("income", "monthly_debt_obligations"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidFinancialProfileError(f"{name} must be a finite number, got {value!r}")
        if self.monthly_debt_obligations < 0:
            raise InvalidFinancialProfileError("monthly_debt_obligations must be non-negative")
        if not MIN_DOWN_PAYMENT_PERCENT <= self.down_payment_percent <= MAX_DOWN_PAYMENT_PERCENT:
            raise InvalidFinancialProfileError(
                f"down_payment_percent must be between {MIN_DOWN_PAYMENT_PERCENT} "
                f"and {MAX_DOWN_PAYMENT_PERCENT}, got {self.down_payment_percent}"
            )

    @property
    def monthly_income(self) -> float:
        if self.income_type == IncomeType.YEARLY:
            return self.income / 12
        return self.income

    @property
    def down_payment_fraction(self) -> float:
        return self.down_payment_percent / 100


@dataclass(frozen=True)
class RentAffordability:
    """Rent ceiling and the comfortable band below it."""
    max_monthly_rent: int
    affordable_range_min: int
    affordable_range_max: int

    mode = AffordabilityMode.RENT

    def to_price_range(self) -> PriceRange:
        return PriceRange(self.affordable_range_min, self.affordable_range_max)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "max_monthly_rent": self.max_monthly_rent,
            "affordable_range": {
                "min": self.affordable_range_min,
                "max": self.affordable_range_max,
            },
        }


@dataclass(frozen=True)
class BuyAffordability:
    """Purchase ceiling with the mortgage that supports it."""
    max_property_price: int
    monthly_mortgage_payment: int
    recommended_down_payment: int
    affordable_range_min: int
    affordable_range_max: int
    annual_interest_rate: float

    mode = AffordabilityMode.BUY

    def to_price_range(self) -> PriceRange:
        return PriceRange(self.affordable_range_min, self.affordable_range_max)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "max_property_price": self.max_property_price,
            "monthly_mortgage_payment": self.monthly_mortgage_payment,
            "recommended_down_payment": self.recommended_down_payment,
            "annual_interest_rate": self.annual_interest_rate,
            "affordable_range": {
                "min": self.affordable_range_min,
                "max": self.affordable_range_max,
            },
        }


AffordabilityResult = Union[RentAffordability, BuyAffordability]


def loan_principal(monthly_payment: float, monthly_rate: float, months: int) -> float:
    """
    Largest principal a fixed payment can amortise.

    P = M * [(1 + i)^n - 1] / [i * (1 + i)^n]

    A zero rate degenerates to M * n.
    """
    if monthly_rate == 0:
        return monthly_payment * months
    growth = (1 + monthly_rate) ** months
    return monthly_payment * (growth - 1) / (monthly_rate * growth)


class AffordabilityEngine:
    """
    Stateless affordability calculator.

    Returns None instead of raising when there is no income to work
    from, since that is the normal state before the user enters one.
    """

    def calculate(self, profile: FinancialProfile) -> Optional[AffordabilityResult]:
        """
        Calculate affordability in the profile's mode.

        Args:
            profile: Financial inputs

        Returns:
            RentAffordability or BuyAffordability, or None if income <= 0
        """
        if profile.mode == AffordabilityMode.BUY:
            return self.buy(profile)
        return self.rent(profile)

    def rent(self, profile: FinancialProfile) -> Optional[RentAffordability]:
        """Rent ceiling under both the 30% rule and the 36% DTI headroom."""
        income = profile.monthly_income
        if income <= 0:
            return None

        available = self._available_for_housing(profile)
        max_rent = min(income * RENT_INCOME_RATIO, available)

        return RentAffordability(
            max_monthly_rent=math.floor(max_rent),
            affordable_range_min=math.floor(max_rent * RANGE_FLOOR_SHARE),
            affordable_range_max=math.floor(max_rent),
        )

    def buy(self, profile: FinancialProfile) -> Optional[BuyAffordability]:
        """Purchase ceiling from a 30-year fixed mortgage at the tier rate."""
        income = profile.monthly_income
        if income <= 0:
            return None

        max_housing = income * HOUSING_EXPENSE_RATIO
        available = self._available_for_housing(profile)
        max_payment = min(max_housing, available) * MORTGAGE_PAYMENT_SHARE

        annual_rate = profile.credit_tier.annual_rate
        principal = loan_principal(max_payment, annual_rate / 12, LOAN_TERM_MONTHS)

        dp = profile.down_payment_fraction
        max_price = principal / (1 - dp)
        down_payment = max_price * dp

        return BuyAffordability(
            max_property_price=math.floor(max_price),
            monthly_mortgage_payment=math.floor(max_payment),
            recommended_down_payment=math.floor(down_payment),
            affordable_range_min=math.floor(max_price * RANGE_FLOOR_SHARE),
            affordable_range_max=math.floor(max_price),
            annual_interest_rate=annual_rate,
        )

    @staticmethod
    def _available_for_housing(profile: FinancialProfile) -> float:
        max_total_debt = profile.monthly_income * TOTAL_DEBT_RATIO
        return max(0.0, max_total_debt - profile.monthly_debt_obligations)
