from .policy import deductions_for, minimum_wage_for, tax_brackets_for, base_salary, default_policy
from .gross_net import compute_from_gross, calculate
from .solver import solve_gross_from_net, bisect_gross
from .pit import progressive_tax, bracket_info
from .models import (
    CalculationMode, PolicyPeriod, Region, CalculationInput,
    CalculationResult, TaxDetail, SolveReport, PolicyConfig
)
