"""
Payroll approval lifecycle.

States and the only legal edges:

    calculated --approve--> approved --mark_paid--> paid

`paid` is terminal. Records change status only through the functions in
this module; each one checks the edge before touching the record.
"""
import datetime
from enum import Enum
from typing import Dict, Optional

from payroll_ledger.core.errors import IllegalTransition, PayrollLocked

class PayrollStatus(str, Enum):
    CALCULATED = "calculated"
    APPROVED = "approved"
    PAID = "paid"

TRANSITIONS: Dict[PayrollStatus, PayrollStatus] = {
    PayrollStatus.CALCULATED: PayrollStatus.APPROVED,
    PayrollStatus.APPROVED: PayrollStatus.PAID,
}

def can_transition(current: str, target: str) -> bool:
    return TRANSITIONS.get(PayrollStatus(current)) == PayrollStatus(target)

def _advance(payroll, target: PayrollStatus):
    if not can_transition(payroll.status, target):
        raise IllegalTransition(payroll.id, payroll.status, target.value)
    payroll.status = target.value
    return payroll

def ensure_recalculable(payroll):
    """Only a still-calculated period may be overwritten by a new calculation."""
    if payroll.status != PayrollStatus.CALCULATED.value:
        raise PayrollLocked(payroll.id, payroll.status)

def approve(payroll, approved_by: str, at: Optional[datetime.datetime] = None):
    _advance(payroll, PayrollStatus.APPROVED)
    payroll.approved_by = approved_by
    payroll.approved_at = at or datetime.datetime.utcnow()
    return payroll

def mark_paid(payroll, payment_method: str, paid_date: datetime.date):
    _advance(payroll, PayrollStatus.PAID)
    payroll.payment_method = payment_method
    payroll.paid_date = paid_date
    return payroll
