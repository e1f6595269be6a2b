from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import List, Optional, Literal, Dict, Tuple
from pydantic import BaseModel, ConfigDict

getcontext().prec = 28

VND = Decimal


class CalculationMode(str, Enum):
    GROSS_TO_NET = "GROSS_TO_NET"
    NET_TO_GROSS = "NET_TO_GROSS"


class PolicyPeriod(str, Enum):
    P1_2025_H2 = "P1_2025_H2"
    P2_2026_H1 = "P2_2026_H1"
    P3_2026_H2_ONWARD = "P3_2026_H2_ONWARD"


class Region(str, Enum):
    I = "I"
    II = "II"
    III = "III"
    IV = "IV"


# Policy file models

class EmployeeRates(BaseModel):
    model_config = ConfigDict(extra="forbid")
    social: float
    health: float
    unemployment: float


class EmployerRates(BaseModel):
    model_config = ConfigDict(extra="forbid")
    social: float
    health: float
    unemployment: float
    accident: float  # occupational accident / disease fund


class InsuranceRates(BaseModel):
    employee: EmployeeRates
    employer: EmployerRates


class Bracket(BaseModel):
    model_config = ConfigDict(extra="forbid")
    order: int
    lower: int
    upper: Optional[int] = None  # None = unbounded
    rate_percent: float


class PeriodPolicy(BaseModel):
    label: str
    self_deduction: int
    dependent_deduction: int
    minimum_wage_table: str
    bracket_table: str


class PolicyConfig(BaseModel):
    schema_version: str
    currency: Literal["VND"]
    country: Literal["Vietnam"]
    base_salary: int
    cap_multiplier: int = 20
    insurance: InsuranceRates
    minimum_wages: Dict[str, Dict[Region, int]]
    bracket_tables: Dict[str, List[Bracket]]
    periods: Dict[PolicyPeriod, PeriodPolicy]
    notes: Optional[str] = None


# Calculation records

@dataclass(frozen=True)
class Deductions:
    self_deduction: VND
    dependent_deduction: VND


@dataclass(frozen=True)
class CalculationInput:
    mode: CalculationMode
    period: PolicyPeriod
    amount: VND  # gross or target net, depending on mode
    region: Region = Region.I
    dependents: int = 0
    insurance_salary: VND = Decimal(0)
    insurance_tracks_actual_salary: bool = True
    other_deductions: VND = Decimal(0)


@dataclass(frozen=True)
class TaxDetail:
    level: int
    range_label: str
    taxable_segment: VND
    rate_percent: float
    tax_amount: VND


@dataclass(frozen=True)
class CalculationResult:
    gross: VND
    social_insurance: VND
    health_insurance: VND
    unemployment_insurance: VND
    pre_tax_income: VND
    self_deduction: VND
    dependent_deduction: VND
    other_deductions: VND
    taxable_income: VND
    pit_total: VND
    net: VND
    tax_details: Tuple[TaxDetail, ...] = field(default_factory=tuple)

    # employer side, cost only
    employer_social_insurance: VND = Decimal(0)
    employer_health_insurance: VND = Decimal(0)
    employer_unemployment_insurance: VND = Decimal(0)
    employer_accident_fund: VND = Decimal(0)
    total_employer_cost: VND = Decimal(0)

    @property
    def employee_insurance_total(self) -> VND:
        return self.social_insurance + self.health_insurance + self.unemployment_insurance

    @property
    def total_deductions(self) -> VND:
        return self.self_deduction + self.dependent_deduction + self.other_deductions


@dataclass(frozen=True)
class SolveReport:
    result: CalculationResult
    converged: bool
    iterations: int
    last_diff: VND


# helpers

def vnd(x: float | int | str | Decimal) -> VND:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def round_to_increment(amount: VND, inc: int) -> VND:
    if inc <= 0:
        return amount
    q = Decimal(inc)
    # nearest multiple of inc, half up
    return (amount / q).to_integral_value(rounding=ROUND_HALF_UP) * q
