from decimal import Decimal
from typing import Iterable, List, Tuple
from .models import Bracket, TaxDetail, VND

MILLION = Decimal(1_000_000)


def _millions(amount: int) -> str:
    m = Decimal(amount) / MILLION
    return f"{m.normalize():f}".replace(".", ",")


def range_label(b: Bracket) -> str:
    """Vietnamese bracket label in millions, e.g. 'Trên 5 đến 10 triệu'."""
    if b.upper is None:
        return f"Trên {_millions(b.lower)} triệu"
    if b.order == 1:
        return f"Đến {_millions(b.upper)} triệu"
    return f"Trên {_millions(b.lower)} đến {_millions(b.upper)} triệu"


def progressive_tax(taxable: VND, brackets: Iterable[Bracket]) -> Tuple[VND, List[TaxDetail]]:
    """
    Portion-of-bracket model: each bracket taxes min(taxable, upper) - lower
    at its own rate. Brackets entirely above the taxable amount are omitted.
    """
    total = Decimal(0)
    details: List[TaxDetail] = []
    for b in brackets:
        lower = Decimal(b.lower)
        if taxable <= lower:
            break
        upper = taxable if b.upper is None else min(taxable, Decimal(b.upper))
        portion = upper - lower
        rate = Decimal(str(b.rate_percent)) / Decimal(100)
        tax = portion * rate
        total += tax
        details.append(TaxDetail(
            level=b.order,
            range_label=range_label(b),
            taxable_segment=portion,
            rate_percent=float(b.rate_percent),
            tax_amount=tax,
        ))
    return total, details


def bracket_info(taxable: VND | int, brackets: Iterable[Bracket]):
    """
    Bracket a taxable amount falls in, as (lower, upper] like the detail rows.
    Returns {'order', 'lower', 'upper', 'rate_percent'}; zero taxable maps to
    the first bracket.
    """
    t = Decimal(taxable)
    brackets = list(brackets)
    for b in brackets:
        if t > b.lower and (b.upper is None or t <= b.upper):
            return {"order": b.order, "lower": b.lower, "upper": b.upper, "rate_percent": float(b.rate_percent)}
    b0 = brackets[0]
    return {"order": b0.order, "lower": b0.lower, "upper": b0.upper, "rate_percent": float(b0.rate_percent)}
