from dataclasses import replace
from decimal import Decimal
from typing import Optional

from .models import CalculationInput, CalculationMode, CalculationResult, PolicyConfig, VND, vnd
from .policy import (
    _resolve, deductions_for, minimum_wage_for, tax_brackets_for, base_salary, cap_multiplier,
)
from .insurance import contribution_bases, contributions
from .pit import progressive_tax


def compute_from_gross(
    gross: VND,
    inp: CalculationInput,
    policy: Optional[PolicyConfig] = None,
) -> CalculationResult:
    """
    Forward calculation GROSS -> NET.

    Insurance is computed on ``inp.insurance_salary`` as given; keeping it in
    step with ``gross`` is the caller's job. Only taxable income is clamped at 0,
    everything else is plain arithmetic.
    """
    cfg = _resolve(policy)
    gross = vnd(gross)

    ded = deductions_for(inp.period, cfg)
    min_wage = minimum_wage_for(inp.period, inp.region, cfg)
    brackets = tax_brackets_for(inp.period, cfg)

    bases = contribution_bases(vnd(inp.insurance_salary), min_wage, base_salary(cfg), cap_multiplier(cfg))
    c = contributions(bases, cfg.insurance)

    pre_tax = gross - c.employee_total
    dependent_deduction = ded.dependent_deduction * inp.dependents
    other = vnd(inp.other_deductions)
    total_deduction = ded.self_deduction + dependent_deduction + other
    taxable = max(Decimal(0), pre_tax - total_deduction)

    pit_total, details = progressive_tax(taxable, brackets)

    return CalculationResult(
        gross=gross,
        social_insurance=c.social,
        health_insurance=c.health,
        unemployment_insurance=c.unemployment,
        pre_tax_income=pre_tax,
        self_deduction=ded.self_deduction,
        dependent_deduction=dependent_deduction,
        other_deductions=other,
        taxable_income=taxable,
        pit_total=pit_total,
        net=pre_tax - pit_total,
        tax_details=tuple(details),
        employer_social_insurance=c.employer_social,
        employer_health_insurance=c.employer_health,
        employer_unemployment_insurance=c.employer_unemployment,
        employer_accident_fund=c.employer_accident,
        total_employer_cost=gross + c.employer_total,
    )


def calculate(inp: CalculationInput, policy: Optional[PolicyConfig] = None) -> CalculationResult:
    """Dispatch on ``inp.mode``; ``inp.amount`` is the gross or the target net."""
    if CalculationMode(inp.mode) == CalculationMode.NET_TO_GROSS:
        from .solver import solve_gross_from_net
        return solve_gross_from_net(inp.amount, inp, policy)
    if inp.insurance_tracks_actual_salary:
        inp = replace(inp, insurance_salary=inp.amount)
    return compute_from_gross(inp.amount, inp, policy)
