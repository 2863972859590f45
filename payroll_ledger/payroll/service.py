"""
Payroll operations for one store: calculation, approval, payment and reporting.

Every operation validates its input before opening a transaction and runs
its reads and writes inside a single transaction, so a failure leaves no
partial state behind.
"""
import datetime
from typing import Dict, List, Any, Optional

from ..approvals import engine as lifecycle
from ..attendance.aggregator import AttendanceAggregator, summary
from ..core.errors import PayrollError
from ..core.repositories import EmployeesRepository, PayrollRepository
from ..core.schemas import ApprovalRequest, PaymentRequest, PayrollPeriod
from ..core.utils import audit_log, setup_logging
from ..db.session import SessionLocal
from ..ledger import posting
from ..ledger.posting import LedgerPoster
from ..reports.salary_book import SalaryBookReporter, payroll_totals
from .bulk_processor import PayrollBulkProcessor
from .engine import SalaryCalculator

class PayrollService:
    def __init__(self, store_id: str, session_factory=None, calculator: SalaryCalculator = None):
        self.store_id = store_id
        self.session_factory = session_factory or SessionLocal
        self.calculator = calculator or SalaryCalculator()
        self.employees = EmployeesRepository(store_id)
        self.payrolls = PayrollRepository(store_id)
        self.attendance = AttendanceAggregator(store_id)
        self.ledger = LedgerPoster(store_id)
        self.bulk = PayrollBulkProcessor(store_id, self.session_factory, self.calculator)
        self.logger = setup_logging(store_id)

    def calculate_salary(self, employee_id: str, month: int, year: int, actor: str = None) -> Dict[str, Any]:
        period = PayrollPeriod(month=month, year=year)
        with self.session_factory() as session, session.begin():
            emp = self.employees.get(session, employee_id)
            days = self.attendance.working_days_for(session, emp.id, period.month, period.year)
            draft = self.calculator.draft_for(emp, period.month, period.year, days)
            payroll, created = self.payrolls.upsert(session, draft)
            result = payroll.to_dict()
        self.logger.info("payroll %s %s for employee %s, net %s",
                         period.label, "created" if created else "recalculated", employee_id, result["net_salary"])
        audit_log(self.store_id, actor or "system", "payroll.calculate", "payroll", result["id"],
                  {"net_salary": result["net_salary"], "created": created})
        return result

    def calculate_all_salaries(self, month: int, year: int) -> Dict[str, Any]:
        period = PayrollPeriod(month=month, year=year)
        return self.bulk.calculate_all(period.month, period.year)

    def approve_payroll(self, payroll_ids: List[str], approved_by: str) -> Dict[str, Any]:
        """Approve each calculated id; anything else is rejected on its own without failing the rest."""
        request = ApprovalRequest(payroll_ids=payroll_ids)
        approved, rejected = [], []
        now = datetime.datetime.utcnow()
        with self.session_factory() as session, session.begin():
            for pid in dict.fromkeys(request.payroll_ids):
                try:
                    payroll = self.payrolls.get(session, pid, for_update=True)
                    lifecycle.approve(payroll, approved_by, at=now)
                except PayrollError as e:
                    rejected.append({
                        "payroll_id": pid,
                        "status": getattr(e, "current", None),
                        "reason": str(e),
                    })
                    continue
                approved.append(payroll)
            session.flush()
            payrolls = [p.to_dict() for p in approved]

        for p in payrolls:
            audit_log(self.store_id, approved_by, "payroll.approve", "payroll", p["id"], {"status": "approved"})
        if rejected:
            self.logger.warning("approval rejected %d payroll ids: %s", len(rejected),
                                [r["payroll_id"] for r in rejected])
        return {"approved": len(payrolls), "payrolls": payrolls, "rejected": rejected}

    def mark_paid(self, payroll_id: str, payment_method: str,
                  payment_date: Optional[datetime.date] = None, paid_by: str = None) -> Dict[str, Any]:
        """approved -> paid, with ledger posting in the same transaction."""
        request = PaymentRequest(payment_method=payment_method, payment_date=payment_date)
        paid_date = request.payment_date or datetime.date.today()
        with posting.writer(self.store_id):
            with self.session_factory() as session, session.begin():
                payroll = self.payrolls.get(session, payroll_id, for_update=True)
                lifecycle.mark_paid(payroll, request.payment_method, paid_date)
                employee_name = payroll.employee.name if payroll.employee else None
                booked = self.ledger.post_salary_payment(session, payroll, employee_name, paid_by=paid_by)
                session.flush()
                result = payroll.to_dict()
                cash_entry = booked["cash_entry"]
                balance = cash_entry.balance if cash_entry is not None else None

        self.logger.info("payroll %s paid by %s, net %s, cash balance %s",
                         payroll_id, request.payment_method, result["net_salary"], balance)
        audit_log(self.store_id, paid_by or "system", "payroll.mark_paid", "payroll", payroll_id,
                  {"payment_method": request.payment_method, "paid_date": result["paid_date"]})
        return result

    def get_payroll(self, month: int, year: int) -> Dict[str, Any]:
        period = PayrollPeriod(month=month, year=year)
        with self.session_factory() as session:
            payrolls = self.payrolls.list_for_period(session, period.month, period.year)
            rows = []
            for p in payrolls:
                row = p.to_dict()
                emp = p.employee
                row["employee"] = {
                    "id": emp.id,
                    "name": emp.name,
                    "position": emp.position,
                    "bank_account": emp.bank_account,
                    "bank_name": emp.bank_name,
                }
                rows.append(row)
            totals = payroll_totals(payrolls)
        return {"payrolls": rows, "totals": totals, "period": period.label}

    def get_salary_book(self, month: int, year: int) -> Dict[str, Any]:
        period = PayrollPeriod(month=month, year=year)
        with self.session_factory() as session:
            payrolls = self.payrolls.list_for_period(session, period.month, period.year)
            return SalaryBookReporter(period.month, period.year).build(payrolls)

    def attendance_summary(self, employee_id: str, month: int, year: int) -> Dict[str, Any]:
        period = PayrollPeriod(month=month, year=year)
        with self.session_factory() as session:
            emp = self.employees.get(session, employee_id)
            rows = self.attendance.load_rows(session, emp.id, period.month, period.year)
            attendance = [
                {"id": r.id, "work_date": r.work_date.isoformat(), "status": r.status, "note": r.note}
                for r in rows
            ]
        return {"summary": summary(a["status"] for a in attendance), "attendance": attendance}
