"""
Attendance reduction for payroll periods.

Only the status of each day matters here; check-in/out capture lives in the
attendance subsystem.
"""
import calendar
from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select

from payroll_ledger.db.models import Attendance

class AttendanceStatus(str, Enum):
    PRESENT = "present"
    HALF_DAY = "half_day"
    ABSENT = "absent"
    LEAVE = "leave"

DAY_WEIGHTS = {
    AttendanceStatus.PRESENT: Decimal(1),
    AttendanceStatus.HALF_DAY: Decimal("0.5"),
    AttendanceStatus.ABSENT: Decimal(0),
    AttendanceStatus.LEAVE: Decimal(0),
}

def month_bounds(month: int, year: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)

def working_days(statuses: Iterable[str]) -> Decimal:
    """present counts 1, half_day 0.5, absent and leave nothing."""
    return sum((DAY_WEIGHTS[AttendanceStatus(s)] for s in statuses), Decimal(0))

def summary(statuses: Iterable[str]) -> Dict[str, float]:
    statuses = [AttendanceStatus(s) for s in statuses]
    counts = Counter(statuses)
    return {
        "total_days": len(statuses),
        "present": counts[AttendanceStatus.PRESENT],
        "half_day": counts[AttendanceStatus.HALF_DAY],
        "absent": counts[AttendanceStatus.ABSENT],
        "leave": counts[AttendanceStatus.LEAVE],
        "total_working_days": float(working_days(statuses)),
    }

class AttendanceAggregator:
    def __init__(self, store_id: str):
        self.store_id = store_id

    def _period_query(self, month: int, year: int):
        start, end = month_bounds(month, year)
        return (
            select(Attendance)
            .where(Attendance.store_id == self.store_id)
            .where(Attendance.work_date >= start)
            .where(Attendance.work_date <= end)
        )

    def load_rows(self, session, employee_id: str, month: int, year: int) -> List[Attendance]:
        stmt = self._period_query(month, year).where(Attendance.employee_id == employee_id)
        return list(session.scalars(stmt.order_by(Attendance.work_date)))

    def statuses_for_period(
        self, session, month: int, year: int, employee_ids: Optional[List[str]] = None
    ) -> Dict[str, List[str]]:
        """One query for every employee's statuses in the month, grouped by employee."""
        stmt = self._period_query(month, year)
        if employee_ids is not None:
            if not employee_ids:
                return {}
            stmt = stmt.where(Attendance.employee_id.in_(employee_ids))
        grouped = defaultdict(list)
        for row in session.scalars(stmt):
            grouped[row.employee_id].append(row.status)
        return dict(grouped)

    def working_days_for(self, session, employee_id: str, month: int, year: int) -> Decimal:
        return working_days(r.status for r in self.load_rows(session, employee_id, month, year))
