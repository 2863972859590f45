import datetime
import uuid

import pytest

from payroll_ledger.core.config import settings
from payroll_ledger.db.models import Attendance, Employee
from payroll_ledger.db.session import init_db, make_engine, make_session_factory

STORE = "store-1"

@pytest.fixture(autouse=True)
def audit_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_LOG_PATH", str(tmp_path / "logs"))
    return tmp_path / "logs"

@pytest.fixture
def engine():
    eng = init_db(make_engine("sqlite://"))
    yield eng
    eng.dispose()

@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)

def add_employee(session, name="Nguyen Van A", base_salary=10_000_000, allowances=500_000,
                 dependents=1, active=True, store_id=STORE, position="Thu ngân"):
    emp = Employee(id=str(uuid.uuid4()), store_id=store_id, name=name, position=position,
                   base_salary=base_salary, allowances=allowances, dependents=dependents, active=active)
    session.add(emp)
    session.flush()
    return emp

def add_attendance(session, employee, month, year, present=0, half_day=0, absent=0, leave=0):
    statuses = ["present"] * present + ["half_day"] * half_day + ["absent"] * absent + ["leave"] * leave
    for day, status in enumerate(statuses, start=1):
        session.add(Attendance(store_id=employee.store_id, employee_id=employee.id,
                               work_date=datetime.date(year, month, day), status=status))
    session.flush()

@pytest.fixture
def seeded(session_factory):
    """Two active employees and one inactive one with attendance for 3/2026."""
    with session_factory() as s, s.begin():
        a = add_employee(s, name="An")
        add_attendance(s, a, 3, 2026, present=22, half_day=2, absent=1)
        b = add_employee(s, name="Binh", base_salary=60_000_000, allowances=2_000_000, dependents=0)
        add_attendance(s, b, 3, 2026, present=26)
        c = add_employee(s, name="Cuong", active=False)
        add_attendance(s, c, 3, 2026, present=10)
        ids = {"an": a.id, "binh": b.id, "cuong": c.id}
    return ids
