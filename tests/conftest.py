"""Common test fixtures and configuration for vnpayroll tests."""

import pytest
from pathlib import Path
from decimal import Decimal

from vnpayroll.io.loader import load_policy_config
from vnpayroll.engine.models import CalculationInput, CalculationMode, PolicyPeriod, Region, vnd

CONFIG_ROOT = Path(__file__).resolve().parents[1] / "vnpayroll" / "configs"


@pytest.fixture
def config_root():
    """Path to configuration files."""
    return CONFIG_ROOT


@pytest.fixture
def policy(config_root):
    """Packaged policy table."""
    return load_policy_config(config_root)


def make_input(
    amount,
    period=PolicyPeriod.P1_2025_H2,
    region=Region.I,
    dependents=0,
    insurance_salary=None,
    other_deductions=0,
    mode=CalculationMode.GROSS_TO_NET,
):
    """Build an input; without insurance_salary the insurance tracks the actual gross."""
    tracks = insurance_salary is None
    return CalculationInput(
        mode=mode,
        period=period,
        amount=vnd(amount),
        region=region,
        dependents=dependents,
        insurance_salary=vnd(amount if tracks else insurance_salary),
        insurance_tracks_actual_salary=tracks,
        other_deductions=vnd(other_deductions),
    )


class PayrollCase:
    """Expected gross -> net breakdown for one configuration."""
    def __init__(self, gross: int, period: PolicyPeriod, employee_insurance: int, taxable: int,
                 pit: int, net: int, levels: int, dependents: int = 0, description: str = ""):
        self.gross = gross
        self.period = period
        self.employee_insurance = Decimal(employee_insurance)
        self.taxable = Decimal(taxable)
        self.pit = Decimal(pit)
        self.net = Decimal(net)
        self.levels = levels
        self.dependents = dependents
        self.description = description

    def __repr__(self):
        return f"PayrollCase(gross={self.gross}, period={self.period.value}, net={self.net})"


@pytest.fixture
def sample_payroll_cases():
    """Hand-checked cases, region I, insurance on actual gross."""
    return [
        PayrollCase(20_000_000, PolicyPeriod.P1_2025_H2, 2_100_000, 6_900_000, 440_000, 17_460_000, 2,
                    description="P1 mid salary, two brackets"),
        PayrollCase(20_000_000, PolicyPeriod.P3_2026_H2_ONWARD, 2_100_000, 2_400_000, 120_000, 17_780_000, 1,
                    description="P3 higher self deduction, 5-bracket table"),
        PayrollCase(20_000_000, PolicyPeriod.P2_2026_H1, 2_100_000, 2_400_000, 120_000, 17_780_000, 1,
                    description="P2 new deductions, 7-bracket table"),
        PayrollCase(20_000_000, PolicyPeriod.P1_2025_H2, 2_100_000, 2_500_000, 125_000, 17_775_000, 1,
                    dependents=1, description="P1 one dependent"),
        PayrollCase(100_000_000, PolicyPeriod.P1_2025_H2, 5_438_000, 83_562_000, 19_396_700, 75_165_300, 7,
                    description="P1 high salary, capped insurance, top bracket"),
    ]
