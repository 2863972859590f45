from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from payroll_ledger.core.config import settings
from payroll_ledger.core.utils import round_vnd, to_decimal

INSURANCE_SCHEMES = ("social", "health", "unemployment")

def _bracket_table(brackets: Optional[List[Tuple[float, float]]] = None) -> List[Tuple[Decimal, Decimal]]:
    return [(to_decimal(limit), to_decimal(rate)) for limit, rate in (brackets or settings.PIT_BRACKETS)]

def calculate_pit(taxable_income, brackets: Optional[List[Tuple[float, float]]] = None) -> int:
    """Progressive personal income tax on a monthly taxable income, in whole VND."""
    remaining = to_decimal(taxable_income)
    if remaining <= 0:
        return 0
    tax = Decimal(0)
    prev_limit = Decimal(0)
    for limit, rate in _bracket_table(brackets):
        band = min(remaining, limit - prev_limit)
        if band <= 0:
            break
        tax += band * rate
        remaining -= band
        prev_limit = limit
    return round_vnd(tax)

def compute_insurance(gross) -> Dict[str, Dict[str, int]]:
    """
    Statutory insurance on the capped base.

    Each contribution is rounded on its own; totals are sums of the rounded parts.
    """
    base = min(to_decimal(gross), to_decimal(settings.INSURANCE_CAP))
    out = {"base": base, "employee": {}, "employer": {}}
    for scheme in INSURANCE_SCHEMES:
        rates = settings.INSURANCE_RATES[scheme]
        out["employee"][scheme] = round_vnd(base * to_decimal(rates["employee"]))
        out["employer"][scheme] = round_vnd(base * to_decimal(rates["employer"]))
    out["employee_total"] = sum(out["employee"].values())
    out["employer_total"] = sum(out["employer"].values())
    return out

def family_deductions(dependents: int) -> Dict[str, int]:
    if dependents < 0:
        raise ValueError("dependents cannot be negative")
    return {
        "personal_deduction": settings.PERSONAL_DEDUCTION,
        "dependent_deduction": dependents * settings.DEPENDENT_DEDUCTION,
    }
