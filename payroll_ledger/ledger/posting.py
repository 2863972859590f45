"""
Cash book and expense posting.

The cash book carries a running balance, so each store has exactly one
writer at a time: callers hold `writer(store_id)` from the balance read
until their transaction commits. Entries are ordered by a per-store `seq`
rather than by timestamp.
"""
import datetime
import threading
from contextlib import contextmanager
from typing import Dict, Optional

from sqlalchemy import select

from payroll_ledger.db.models import CashBookEntry, Expense

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()

def store_lock(store_id: str) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(store_id, threading.Lock())

@contextmanager
def writer(store_id: str):
    lock = store_lock(store_id)
    with lock:
        yield

def salary_description(month: int, year: int, employee_name: Optional[str]) -> str:
    return f"Lương T{month}/{year} - {employee_name or 'NV'}"

class LedgerPoster:
    def __init__(self, store_id: str):
        self.store_id = store_id

    def latest_entry(self, session) -> Optional[CashBookEntry]:
        stmt = (
            select(CashBookEntry)
            .where(CashBookEntry.store_id == self.store_id)
            .order_by(CashBookEntry.seq.desc())
            .limit(1)
        )
        return session.scalars(stmt).first()

    def current_balance(self, session) -> int:
        last = self.latest_entry(session)
        return last.balance if last else 0

    def append_cash_entry(
        self,
        session,
        description: str,
        debit: int = 0,
        credit: int = 0,
        reference_type: str = None,
        reference_id: str = None,
        transaction_date: datetime.date = None,
        created_by: str = None,
        voucher_no: str = None,
    ) -> CashBookEntry:
        """Append one entry; the caller must hold writer(store_id)."""
        if not store_lock(self.store_id).locked():
            raise RuntimeError("cash book writes require the store writer lock")
        if debit < 0 or credit < 0:
            raise ValueError("debit and credit must be non-negative")
        last = self.latest_entry(session)
        seq = last.seq + 1 if last else 1
        balance = (last.balance if last else 0) + debit - credit
        entry = CashBookEntry(
            store_id=self.store_id,
            seq=seq,
            transaction_date=transaction_date or datetime.date.today(),
            voucher_no=voucher_no,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            debit=debit,
            credit=credit,
            balance=balance,
            created_by=created_by,
        )
        session.add(entry)
        session.flush()
        return entry

    def record_expense(
        self,
        session,
        description: str,
        amount: int,
        payment_method: str,
        expense_date: datetime.date,
        created_by: str = None,
    ) -> Expense:
        expense = Expense(
            store_id=self.store_id,
            description=description,
            amount=amount,
            payment_method=payment_method,
            expense_date=expense_date,
            created_by=created_by,
        )
        session.add(expense)
        session.flush()
        return expense

    def post_salary_payment(self, session, payroll, employee_name: str, paid_by: str = None) -> Dict:
        """
        Book a paid payroll: a cash book credit of the net pay for cash payments,
        and an expense of the gross pay for every payment method.
        Bank transfers have no bank book posting here.
        """
        description = salary_description(payroll.period_month, payroll.period_year, employee_name)
        cash_entry = None
        if payroll.payment_method == "cash":
            cash_entry = self.append_cash_entry(
                session,
                description=description,
                credit=payroll.net_salary,
                reference_type="salary",
                reference_id=payroll.id,
                transaction_date=payroll.paid_date,
                created_by=paid_by,
            )
        expense = self.record_expense(
            session,
            description=description,
            amount=payroll.gross_salary,
            payment_method=payroll.payment_method,
            expense_date=payroll.paid_date,
            created_by=paid_by,
        )
        return {"cash_entry": cash_entry, "expense": expense}
