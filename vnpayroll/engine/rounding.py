from decimal import Decimal
from .models import round_to_increment


def display_round(amount: Decimal, inc: int = 1) -> Decimal:
    """Round for display only; the engine itself never rounds."""
    return round_to_increment(amount, inc) if inc else amount


def format_vnd(amount: Decimal, separator: str = ".") -> str:
    """Whole-VND string with vi-VN style thousands separators."""
    q = display_round(amount)
    text = f"{int(q):,}"
    return text.replace(",", separator) if separator != "," else text
