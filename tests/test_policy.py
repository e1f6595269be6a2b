"""Tests for policy table lookups and PIT bracket helpers."""

import pytest
from decimal import Decimal

from vnpayroll.engine.policy import (
    deductions_for, minimum_wage_for, tax_brackets_for, base_salary, period_label, default_policy,
)
from vnpayroll.engine.pit import range_label, bracket_info, progressive_tax
from vnpayroll.engine.models import PolicyPeriod, Region


class TestLookups:

    def test_deductions(self, policy):
        p1 = deductions_for(PolicyPeriod.P1_2025_H2, policy)
        assert p1.self_deduction == Decimal(11_000_000)
        assert p1.dependent_deduction == Decimal(4_400_000)
        for period in (PolicyPeriod.P2_2026_H1, PolicyPeriod.P3_2026_H2_ONWARD):
            d = deductions_for(period, policy)
            assert d.self_deduction == Decimal(15_500_000)
            assert d.dependent_deduction == Decimal(6_200_000)

    @pytest.mark.parametrize("region,w2025,w2026", [
        (Region.I, 4_960_000, 5_310_000),
        (Region.II, 4_410_000, 4_730_000),
        (Region.III, 3_860_000, 4_140_000),
        (Region.IV, 3_450_000, 3_700_000),
    ])
    def test_minimum_wages(self, policy, region, w2025, w2026):
        assert minimum_wage_for(PolicyPeriod.P1_2025_H2, region, policy) == Decimal(w2025)
        assert minimum_wage_for(PolicyPeriod.P2_2026_H1, region, policy) == Decimal(w2026)
        assert minimum_wage_for(PolicyPeriod.P3_2026_H2_ONWARD, region, policy) == Decimal(w2026)

    def test_bracket_tables(self, policy):
        seven = tax_brackets_for(PolicyPeriod.P1_2025_H2, policy)
        assert len(seven) == 7
        assert tax_brackets_for(PolicyPeriod.P2_2026_H1, policy) == seven
        five = tax_brackets_for(PolicyPeriod.P3_2026_H2_ONWARD, policy)
        assert [b.rate_percent for b in five] == [5, 10, 25, 30, 35]
        for table in (seven, five):
            assert table[0].lower == 0
            assert table[-1].upper is None
            for prev, cur in zip(table, table[1:]):
                assert cur.lower == prev.upper

    def test_base_salary_is_shared(self, policy):
        assert base_salary(policy) == Decimal(policy.base_salary) == Decimal(2_340_000)
        assert base_salary() == Decimal(default_policy().base_salary)

    def test_string_keys_accepted(self, policy):
        assert minimum_wage_for("P1_2025_H2", "IV", policy) == Decimal(3_450_000)

    def test_period_labels(self, policy):
        assert period_label(PolicyPeriod.P1_2025_H2, policy) == "P1: 01/07/2025 – 31/12/2025"
        assert period_label(PolicyPeriod.P3_2026_H2_ONWARD, policy) == "P3: Từ 01/07/2026 trở đi"


class TestBracketHelpers:

    def test_range_labels_seven(self, policy):
        labels = [range_label(b) for b in tax_brackets_for(PolicyPeriod.P1_2025_H2, policy)]
        assert labels == [
            "Đến 5 triệu",
            "Trên 5 đến 10 triệu",
            "Trên 10 đến 18 triệu",
            "Trên 18 đến 32 triệu",
            "Trên 32 đến 52 triệu",
            "Trên 52 đến 80 triệu",
            "Trên 80 triệu",
        ]

    def test_range_labels_five(self, policy):
        labels = [range_label(b) for b in tax_brackets_for(PolicyPeriod.P3_2026_H2_ONWARD, policy)]
        assert labels[0] == "Đến 10 triệu"
        assert labels[-1] == "Trên 100 triệu"

    @pytest.mark.parametrize("taxable,order,rate", [
        (0, 1, 5),
        (5_000_000, 1, 5),
        (5_000_001, 2, 10),
        (6_900_000, 2, 10),
        (80_000_000, 6, 30),
        (200_000_000, 7, 35),
    ])
    def test_bracket_info(self, policy, taxable, order, rate):
        info = bracket_info(taxable, tax_brackets_for(PolicyPeriod.P1_2025_H2, policy))
        assert info["order"] == order
        assert info["rate_percent"] == rate

    def test_tax_at_bracket_boundary_stops_at_that_bracket(self, policy):
        total, details = progressive_tax(Decimal(10_000_000), tax_brackets_for(PolicyPeriod.P1_2025_H2, policy))
        assert total == Decimal(750_000)
        assert [d.level for d in details] == [1, 2]

    def test_full_five_bracket_walk(self, policy):
        total, details = progressive_tax(Decimal(120_000_000), tax_brackets_for(PolicyPeriod.P3_2026_H2_ONWARD, policy))
        # 0.5M + 2M + 7.5M + 12M + 7M
        assert total == Decimal(29_000_000)
        assert details[-1].taxable_segment == Decimal(20_000_000)
