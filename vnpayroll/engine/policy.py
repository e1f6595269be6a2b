"""Policy table lookups.

Pure reads over a validated ``PolicyConfig``. Every lookup takes an optional
``policy`` argument; when omitted the packaged default table is used.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional, Tuple

from .models import Bracket, Deductions, PolicyConfig, PolicyPeriod, Region, PeriodPolicy


@lru_cache(maxsize=1)
def default_policy() -> PolicyConfig:
    from ..io import loader
    return loader.load_policy_config(loader.CONFIG_ROOT)


def _resolve(policy: Optional[PolicyConfig]) -> PolicyConfig:
    return policy if policy is not None else default_policy()


def period_policy(period: PolicyPeriod, policy: Optional[PolicyConfig] = None) -> PeriodPolicy:
    return _resolve(policy).periods[PolicyPeriod(period)]


def period_label(period: PolicyPeriod, policy: Optional[PolicyConfig] = None) -> str:
    return period_policy(period, policy).label


def deductions_for(period: PolicyPeriod, policy: Optional[PolicyConfig] = None) -> Deductions:
    pol = period_policy(period, policy)
    return Deductions(
        self_deduction=Decimal(pol.self_deduction),
        dependent_deduction=Decimal(pol.dependent_deduction),
    )


def minimum_wage_for(period: PolicyPeriod, region: Region, policy: Optional[PolicyConfig] = None) -> Decimal:
    cfg = _resolve(policy)
    table = cfg.minimum_wages[period_policy(period, cfg).minimum_wage_table]
    return Decimal(table[Region(region)])


def tax_brackets_for(period: PolicyPeriod, policy: Optional[PolicyConfig] = None) -> Tuple[Bracket, ...]:
    cfg = _resolve(policy)
    return tuple(cfg.bracket_tables[period_policy(period, cfg).bracket_table])


def base_salary(policy: Optional[PolicyConfig] = None) -> Decimal:
    """Statutory base salary shared by all periods (social/health cap basis)."""
    return Decimal(_resolve(policy).base_salary)


def cap_multiplier(policy: Optional[PolicyConfig] = None) -> Decimal:
    return Decimal(_resolve(policy).cap_multiplier)

