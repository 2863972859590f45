import datetime
import threading
import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from payroll_ledger.core.errors import EmployeeNotFound, IllegalTransition, PayrollLocked, PayrollNotFound
from payroll_ledger.db.models import CashBookEntry, Employee, Expense, Payroll
from payroll_ledger.db.session import init_db, make_engine, make_session_factory
from payroll_ledger.ledger import posting
from payroll_ledger.ledger.posting import LedgerPoster
from payroll_ledger.payroll.service import PayrollService
from conftest import STORE, add_attendance, add_employee

@pytest.fixture
def svc(session_factory):
    return PayrollService(STORE, session_factory=session_factory)

def _count(session_factory, model):
    with session_factory() as s:
        return s.scalar(select(func.count()).select_from(model))

def _open_cash(session_factory, amount):
    with posting.writer(STORE):
        with session_factory() as s, s.begin():
            LedgerPoster(STORE).append_cash_entry(s, "Opening", debit=amount, reference_type="adjustment")

def test_calculate_salary_example(svc, seeded):
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    assert p["working_days"] == 23
    assert p["standard_days"] == 26
    assert p["gross_salary"] == 9_346_154
    assert p["net_salary"] == 8_364_808
    assert p["status"] == "calculated"

def test_recalculation_is_idempotent(svc, seeded, session_factory):
    first = svc.calculate_salary(seeded["an"], 3, 2026)
    second = svc.calculate_salary(seeded["an"], 3, 2026)
    assert first == second
    assert _count(session_factory, Payroll) == 1

def test_recalculation_overwrites_calculated_row(svc, seeded, session_factory):
    first = svc.calculate_salary(seeded["an"], 3, 2026)
    with session_factory() as s, s.begin():
        s.get(Employee, seeded["an"]).base_salary = 13_000_000
    second = svc.calculate_salary(seeded["an"], 3, 2026)
    assert second["id"] == first["id"]
    assert second["base_salary"] == 13_000_000
    assert second["net_salary"] > first["net_salary"]

def test_unknown_employee_and_bad_period(svc, seeded, session_factory):
    with pytest.raises(EmployeeNotFound):
        svc.calculate_salary("nobody", 3, 2026)
    with pytest.raises(ValidationError):
        svc.calculate_salary(seeded["an"], 13, 2026)
    with pytest.raises(ValidationError):
        svc.get_payroll(0, 2026)
    assert _count(session_factory, Payroll) == 0

def test_other_store_employee_is_unknown(session_factory, seeded):
    with pytest.raises(EmployeeNotFound):
        PayrollService("store-2", session_factory=session_factory).calculate_salary(seeded["an"], 3, 2026)

def test_approve_then_recalculate_is_rejected(svc, seeded):
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    res = svc.approve_payroll([p["id"]], approved_by="manager")
    assert res["approved"] == 1 and res["rejected"] == []
    assert res["payrolls"][0]["approved_by"] == "manager"
    assert res["payrolls"][0]["approved_at"] is not None
    with pytest.raises(PayrollLocked):
        svc.calculate_salary(seeded["an"], 3, 2026)

def test_approve_rejects_individually(svc, seeded):
    a = svc.calculate_salary(seeded["an"], 3, 2026)
    b = svc.calculate_salary(seeded["binh"], 3, 2026)
    svc.approve_payroll([a["id"]], approved_by="m1")
    res = svc.approve_payroll([a["id"], b["id"], "missing"], approved_by="m2")
    assert res["approved"] == 1
    assert res["payrolls"][0]["id"] == b["id"]
    rejected = {r["payroll_id"]: r for r in res["rejected"]}
    assert rejected[a["id"]]["status"] == "approved"
    assert rejected["missing"]["status"] is None
    # the already approved row keeps its first approver
    rows = {r["id"]: r for r in svc.get_payroll(3, 2026)["payrolls"]}
    assert rows[a["id"]]["approved_by"] == "m1"

def test_approve_requires_ids(svc):
    with pytest.raises(ValidationError):
        svc.approve_payroll([], approved_by="m")

def test_mark_paid_cash_posts_ledger_and_expense(svc, seeded, session_factory):
    _open_cash(session_factory, 20_000_000)
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    svc.approve_payroll([p["id"]], approved_by="m")
    paid = svc.mark_paid(p["id"], "cash", datetime.date(2026, 4, 5), paid_by="cashier")
    assert paid["status"] == "paid"
    assert paid["payment_method"] == "cash"
    assert paid["paid_date"] == "2026-04-05"
    with session_factory() as s:
        entry = s.scalars(select(CashBookEntry).order_by(CashBookEntry.seq.desc())).first()
        assert entry.credit == 8_364_808 and entry.debit == 0
        assert entry.balance == 20_000_000 - 8_364_808
        assert entry.reference_type == "salary" and entry.reference_id == p["id"]
        assert entry.description == "Lương T3/2026 - An"
        exp = s.scalars(select(Expense)).one()
        assert exp.amount == 9_346_154
        assert exp.created_by == "cashier"

def test_mark_paid_bank_transfer_has_no_cash_entry(svc, seeded, session_factory):
    p = svc.calculate_salary(seeded["binh"], 3, 2026)
    svc.approve_payroll([p["id"]], approved_by="m")
    svc.mark_paid(p["id"], "bank_transfer")
    assert _count(session_factory, CashBookEntry) == 0
    assert _count(session_factory, Expense) == 1

def test_mark_paid_guards(svc, seeded, session_factory):
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    with pytest.raises(IllegalTransition):
        svc.mark_paid(p["id"], "cash")
    with pytest.raises(PayrollNotFound):
        svc.mark_paid("missing", "cash")
    with pytest.raises(ValidationError):
        svc.mark_paid(p["id"], "cheque")
    svc.approve_payroll([p["id"]], approved_by="m")
    svc.mark_paid(p["id"], "cash")
    with pytest.raises(IllegalTransition):
        svc.mark_paid(p["id"], "cash")
    assert _count(session_factory, CashBookEntry) == 1
    assert _count(session_factory, Expense) == 1

def test_ledger_failure_rolls_back_payment(svc, seeded, session_factory, monkeypatch):
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    svc.approve_payroll([p["id"]], approved_by="m")

    def boom(*args, **kwargs):
        raise RuntimeError("ledger unavailable")
    monkeypatch.setattr(svc.ledger, "record_expense", boom)
    with pytest.raises(RuntimeError):
        svc.mark_paid(p["id"], "cash")
    row = next(r for r in svc.get_payroll(3, 2026)["payrolls"] if r["id"] == p["id"])
    assert row["status"] == "approved"
    assert row["paid_date"] is None
    assert _count(session_factory, CashBookEntry) == 0

def test_concurrent_cash_payments_keep_balance(tmp_path):
    engine = init_db(make_engine(f"sqlite:///{tmp_path / 'payroll.db'}"))
    factory = make_session_factory(engine)
    svc = PayrollService(STORE, session_factory=factory)
    with factory() as s, s.begin():
        for i in range(6):
            emp = add_employee(s, name=f"E{i}", base_salary=8_000_000 + i * 1_000_000)
            add_attendance(s, emp, 3, 2026, present=26)
    svc.calculate_all_salaries(3, 2026)
    rows = svc.get_payroll(3, 2026)["payrolls"]
    ids = [r["id"] for r in rows]
    svc.approve_payroll(ids, approved_by="m")
    _open_cash(factory, 200_000_000)

    errors = []
    def pay(pid):
        try:
            svc.mark_paid(pid, "cash")
        except Exception as e:  # collected for the assertion below
            errors.append(e)
    threads = [threading.Thread(target=pay, args=(pid,)) for pid in ids]
    for t in threads: t.start()
    for t in threads: t.join()

    assert errors == []
    total_net = sum(r["net_salary"] for r in rows)
    with factory() as s:
        entries = list(s.scalars(select(CashBookEntry).order_by(CashBookEntry.seq)))
    assert [e.seq for e in entries] == list(range(1, 8))
    assert entries[-1].balance == 200_000_000 - total_net
    engine.dispose()

def test_get_payroll_totals(svc, seeded):
    svc.calculate_all_salaries(3, 2026)
    res = svc.get_payroll(3, 2026)
    assert res["period"] == "T3/2026"
    assert [r["employee"]["name"] for r in res["payrolls"]] == ["An", "Binh"]
    t = res["totals"]
    assert t["total_gross"] == 9_346_154 + 62_000_000
    assert t["total_net"] == 8_364_808 + 48_814_500
    assert t["total_pit"] == 8_271_500
    assert t["total_insurance_employee"] == 981_346 + 4_914_000
    assert t["total_insurance_employer"] == sum(
        r["employer_social_insurance"] + r["employer_health_insurance"] + r["employer_unemployment_insurance"]
        for r in res["payrolls"]
    )

def test_attendance_summary(svc, seeded):
    res = svc.attendance_summary(seeded["an"], 3, 2026)
    assert res["summary"]["present"] == 22
    assert res["summary"]["half_day"] == 2
    assert res["summary"]["absent"] == 1
    assert res["summary"]["total_working_days"] == 23
    assert len(res["attendance"]) == 25

def test_actions_are_audited(svc, seeded, audit_dir):
    p = svc.calculate_salary(seeded["an"], 3, 2026)
    svc.approve_payroll([p["id"]], approved_by="m")
    svc.mark_paid(p["id"], "bank_transfer", paid_by="c")
    text = (audit_dir / f"{STORE}_audit.jsonl").read_text(encoding="utf-8")
    for action in ("payroll.calculate", "payroll.approve", "payroll.mark_paid"):
        assert action in text
