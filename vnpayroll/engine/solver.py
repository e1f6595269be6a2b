import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from .models import CalculationInput, CalculationResult, PolicyConfig, SolveReport, VND, vnd
from .gross_net import compute_from_gross

logger = logging.getLogger(__name__)

TOLERANCE = Decimal(1)
MAX_ITERATIONS = 100
UPPER_FACTOR = Decimal(3)


def bisect_gross(
    target_net: VND,
    inp: CalculationInput,
    policy: Optional[PolicyConfig] = None,
    *,
    tolerance: VND = TOLERANCE,
    max_iterations: int = MAX_ITERATIONS,
) -> SolveReport:
    """
    Binary search on gross in [target, 3 x target] until |net - target| <= tolerance.

    Relies on net being non-decreasing in gross. When insurance tracks the
    actual salary each trial uses its own gross as insurance salary; otherwise
    the fixed ``inp.insurance_salary`` is reused. The last trial is reported
    even when the search runs out of iterations.
    """
    target = vnd(target_net)
    low = target
    high = target * UPPER_FACTOR
    result = None
    diff = None

    for i in range(1, max_iterations + 1):
        mid = (low + high) / 2
        trial = replace(inp, insurance_salary=mid) if inp.insurance_tracks_actual_salary else inp
        result = compute_from_gross(mid, trial, policy)
        diff = result.net - target
        logger.debug("iter=%d gross=%s net=%s diff=%s", i, mid, result.net, diff)

        if abs(diff) <= tolerance:
            return SolveReport(result=result, converged=True, iterations=i, last_diff=diff)
        if diff > 0:
            high = mid
        else:
            low = mid

    return SolveReport(result=result, converged=False, iterations=max_iterations, last_diff=diff)


def solve_gross_from_net(
    target_net: VND,
    inp: CalculationInput,
    policy: Optional[PolicyConfig] = None,
) -> CalculationResult:
    """NET -> GROSS. Best effort: a non-converged search still returns its last result."""
    report = bisect_gross(target_net, inp, policy)
    if not report.converged:
        logger.warning(
            "Gross search for net %s did not converge after %d iterations (diff %s)",
            target_net, report.iterations, report.last_diff,
        )
    return report.result
