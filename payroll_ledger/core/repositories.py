"""
Repository layer for payroll persistence.
Every method works inside the caller's session; committing is the caller's job.
"""
from typing import Dict, List, Any, Optional, Tuple

from sqlalchemy import select

from payroll_ledger.approvals import engine as lifecycle
from payroll_ledger.core.errors import EmployeeNotFound, PayrollNotFound
from payroll_ledger.db.models import Employee, Payroll

KEY_FIELDS = ("store_id", "employee_id", "period_month", "period_year")

class EmployeesRepository:
    """Read-only view of the employee directory for one store."""

    def __init__(self, store_id: str):
        self.store_id = store_id

    def get(self, session, employee_id: str) -> Employee:
        emp = session.get(Employee, employee_id)
        if emp is None or emp.store_id != self.store_id:
            raise EmployeeNotFound(employee_id)
        return emp

    def get_active_employees(self, session) -> List[Employee]:
        stmt = (
            select(Employee)
            .where(Employee.store_id == self.store_id)
            .where(Employee.active.is_(True))
            .order_by(Employee.name)
        )
        return list(session.scalars(stmt))

class PayrollRepository:
    """Payroll rows keyed by (store, employee, month, year)."""

    def __init__(self, store_id: str):
        self.store_id = store_id

    def find_by_key(self, session, employee_id: str, month: int, year: int, for_update: bool = False) -> Optional[Payroll]:
        stmt = (
            select(Payroll)
            .where(Payroll.store_id == self.store_id)
            .where(Payroll.employee_id == employee_id)
            .where(Payroll.period_month == month)
            .where(Payroll.period_year == year)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.scalars(stmt).one_or_none()

    def get(self, session, payroll_id: str, for_update: bool = False) -> Payroll:
        stmt = select(Payroll).where(Payroll.id == payroll_id).where(Payroll.store_id == self.store_id)
        if for_update:
            stmt = stmt.with_for_update()
        payroll = session.scalars(stmt).one_or_none()
        if payroll is None:
            raise PayrollNotFound(payroll_id)
        return payroll

    def upsert(self, session, draft: Dict[str, Any]) -> Tuple[Payroll, bool]:
        """
        Insert the draft, or overwrite the existing row while it is still calculated.

        Returns (payroll, created). Raises PayrollLocked for approved/paid rows.
        Only columns whose value differs are assigned, so recalculating an
        unchanged period leaves the row untouched.
        """
        if draft.get("store_id", self.store_id) != self.store_id:
            raise ValueError("draft belongs to another store")
        existing = self.find_by_key(
            session, draft["employee_id"], draft["period_month"], draft["period_year"], for_update=True
        )
        if existing is None:
            payroll = Payroll(**{**draft, "store_id": self.store_id})
            session.add(payroll)
            session.flush()
            return payroll, True

        lifecycle.ensure_recalculable(existing)
        for field, value in draft.items():
            if field in KEY_FIELDS:
                continue
            if getattr(existing, field) != value:
                setattr(existing, field, value)
        session.flush()
        return existing, False

    def list_for_period(self, session, month: int, year: int) -> List[Payroll]:
        stmt = (
            select(Payroll)
            .join(Employee, Payroll.employee_id == Employee.id)
            .where(Payroll.store_id == self.store_id)
            .where(Payroll.period_month == month)
            .where(Payroll.period_year == year)
            .order_by(Employee.name, Payroll.id)
        )
        return list(session.scalars(stmt))
