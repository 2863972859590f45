"""
Batch payroll calculation for every active employee of a store.
"""
from typing import Dict, List, Any

from sqlalchemy.exc import SQLAlchemyError

from ..attendance.aggregator import AttendanceAggregator, working_days
from ..core.errors import PayrollError
from ..core.repositories import EmployeesRepository, PayrollRepository
from ..core.utils import setup_logging
from .engine import SalaryCalculator

class PayrollBulkProcessor:
    """Calculates a whole period; one employee's failure never stops the others."""

    def __init__(self, store_id: str, session_factory, calculator: SalaryCalculator = None):
        self.store_id = store_id
        self.session_factory = session_factory
        self.calculator = calculator or SalaryCalculator()
        self.employees = EmployeesRepository(store_id)
        self.payrolls = PayrollRepository(store_id)
        self.attendance = AttendanceAggregator(store_id)
        self.logger = setup_logging(store_id)

    def _load(self, month: int, year: int):
        with self.session_factory() as session:
            employees = self.employees.get_active_employees(session)
            statuses = self.attendance.statuses_for_period(
                session, month, year, employee_ids=[e.id for e in employees]
            )
        return employees, statuses

    def calculate_all(self, month: int, year: int) -> Dict[str, Any]:
        employees, statuses = self._load(month, year)

        results: List[Dict[str, Any]] = []
        failures: List[Dict[str, Any]] = []
        for emp in employees:
            try:
                draft = self.calculator.draft_for(emp, month, year, working_days(statuses.get(emp.id, [])))
                with self.session_factory() as session, session.begin():
                    payroll, _ = self.payrolls.upsert(session, draft)
                    payroll_id = payroll.id
            except (PayrollError, ValueError, TypeError, SQLAlchemyError) as e:
                self.logger.warning("payroll T%s/%s failed for employee %s: %s", month, year, emp.id, e)
                failures.append({"employee_id": emp.id, "error": str(e)})
                continue
            results.append({
                "employee_id": emp.id,
                "payroll_id": payroll_id,
                "net_salary": draft["net_salary"],
            })

        self.logger.info(
            "payroll T%s/%s calculated for %d employees, %d failed", month, year, len(results), len(failures)
        )
        return {"calculated": len(results), "results": results, "failures": failures}
