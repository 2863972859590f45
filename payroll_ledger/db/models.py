import uuid
from sqlalchemy import (
    Column, String, Integer, Float, ForeignKey, DateTime, Date, Boolean, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime
from payroll_ledger.db.session import Base

def _uuid():
    return str(uuid.uuid4())

class Employee(Base):
    __tablename__ = "employees"
    id = Column(String, primary_key=True, default=_uuid)
    store_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    position = Column(String, nullable=True)
    base_salary = Column(Integer, nullable=False, default=0)
    allowances = Column(Integer, nullable=False, default=0)
    dependents = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, default=True)
    bank_account = Column(String, nullable=True)
    bank_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    attendance = relationship("Attendance", back_populates="employee")
    payrolls = relationship("Payroll", back_populates="employee")

class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        Index("ix_attendance_store_date", "store_id", "work_date"),
    )
    id = Column(String, primary_key=True, default=_uuid)
    store_id = Column(String, nullable=False)
    employee_id = Column(String, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="present")  # present / half_day / absent / leave
    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    employee = relationship("Employee", back_populates="attendance")

class Payroll(Base):
    __tablename__ = "payroll"
    __table_args__ = (
        UniqueConstraint("store_id", "employee_id", "period_month", "period_year", name="uq_payroll_period"),
    )
    id = Column(String, primary_key=True, default=_uuid)
    store_id = Column(String, nullable=False, index=True)
    employee_id = Column(String, ForeignKey("employees.id"), nullable=False)
    period_month = Column(Integer, nullable=False)
    period_year = Column(Integer, nullable=False)

    working_days = Column(Float, nullable=False, default=0.0)
    standard_days = Column(Integer, nullable=False, default=26)
    base_salary = Column(Integer, nullable=False, default=0)
    pro_rated_salary = Column(Integer, nullable=False, default=0)
    allowances = Column(Integer, nullable=False, default=0)
    gross_salary = Column(Integer, nullable=False, default=0)

    social_insurance = Column(Integer, nullable=False, default=0)
    health_insurance = Column(Integer, nullable=False, default=0)
    unemployment_insurance = Column(Integer, nullable=False, default=0)
    # employer share is kept for records only, never deducted or posted
    employer_social_insurance = Column(Integer, nullable=False, default=0)
    employer_health_insurance = Column(Integer, nullable=False, default=0)
    employer_unemployment_insurance = Column(Integer, nullable=False, default=0)

    taxable_income = Column(Integer, nullable=False, default=0)
    personal_deduction = Column(Integer, nullable=False, default=0)
    dependent_deduction = Column(Integer, nullable=False, default=0)
    pit = Column(Integer, nullable=False, default=0)
    total_deductions = Column(Integer, nullable=False, default=0)
    net_salary = Column(Integer, nullable=False, default=0)

    status = Column(String, nullable=False, default="calculated")  # calculated / approved / paid
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    payment_method = Column(String, nullable=True)
    paid_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("Employee", back_populates="payrolls")

    @property
    def employee_insurance(self) -> int:
        return self.social_insurance + self.health_insurance + self.unemployment_insurance

    @property
    def employer_insurance(self) -> int:
        return (self.employer_social_insurance + self.employer_health_insurance
                + self.employer_unemployment_insurance)

    def to_dict(self):
        data = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        for key in ("approved_at", "paid_date", "created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

class CashBookEntry(Base):
    __tablename__ = "cash_book"
    __table_args__ = (
        # a second writer racing on the same store fails here instead of forking the balance
        UniqueConstraint("store_id", "seq", name="uq_cash_book_seq"),
    )
    id = Column(String, primary_key=True, default=_uuid)
    store_id = Column(String, nullable=False)
    seq = Column(Integer, nullable=False)
    transaction_date = Column(Date, nullable=False)
    voucher_no = Column(String, nullable=True)
    description = Column(String, nullable=True)
    reference_type = Column(String, nullable=True)  # sale / expense / adjustment / salary
    reference_id = Column(String, nullable=True)
    debit = Column(Integer, nullable=False, default=0)
    credit = Column(Integer, nullable=False, default=0)
    balance = Column(Integer, nullable=False, default=0)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

class Expense(Base):
    __tablename__ = "expenses"
    id = Column(String, primary_key=True, default=_uuid)
    store_id = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    amount = Column(Integer, nullable=False)
    vat_amount = Column(Integer, nullable=False, default=0)
    payment_method = Column(String, nullable=True)  # cash / bank_transfer
    expense_date = Column(Date, nullable=False)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
