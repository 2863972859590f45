from decimal import Decimal
from typing import Dict, Any

from payroll_ledger.core.config import settings
from payroll_ledger.core.utils import round_vnd, to_decimal
from payroll_ledger.tax.payroll import calculate_pit, compute_insurance, family_deductions

class SalaryCalculator:
    """Turns an employee snapshot and a month's working days into a payroll draft."""

    def __init__(self, standard_days: int = None):
        self.standard_days = standard_days or settings.STANDARD_WORKING_DAYS

    def compute(self, base_salary: int, allowances: int, dependents: int, working_days) -> Dict[str, Any]:
        days = to_decimal(working_days)
        if days < 0 or (days * 2) % 1 != 0:
            raise ValueError(f"working days must be a non-negative multiple of 0.5, got {working_days}")

        pro_rated = to_decimal(base_salary) / Decimal(self.standard_days) * days
        gross = pro_rated + to_decimal(allowances or 0)

        ins = compute_insurance(gross)
        employee_ins = ins["employee_total"]
        deductions = family_deductions(dependents or 0)

        taxable = max(0, round_vnd(gross - employee_ins
                                   - deductions["personal_deduction"]
                                   - deductions["dependent_deduction"]))
        pit = calculate_pit(taxable)

        return {
            "working_days": float(days),
            "standard_days": self.standard_days,
            "base_salary": base_salary,
            "pro_rated_salary": round_vnd(pro_rated),
            "allowances": allowances or 0,
            "gross_salary": round_vnd(gross),
            "social_insurance": ins["employee"]["social"],
            "health_insurance": ins["employee"]["health"],
            "unemployment_insurance": ins["employee"]["unemployment"],
            "employer_social_insurance": ins["employer"]["social"],
            "employer_health_insurance": ins["employer"]["health"],
            "employer_unemployment_insurance": ins["employer"]["unemployment"],
            "taxable_income": taxable,
            "personal_deduction": deductions["personal_deduction"],
            "dependent_deduction": deductions["dependent_deduction"],
            "pit": pit,
            "total_deductions": employee_ins + pit,
            "net_salary": round_vnd(gross - employee_ins - pit),
            "status": "calculated",
        }

    def draft_for(self, employee, month: int, year: int, working_days) -> Dict[str, Any]:
        draft = self.compute(employee.base_salary, employee.allowances, employee.dependents, working_days)
        draft.update({
            "store_id": employee.store_id,
            "employee_id": employee.id,
            "period_month": month,
            "period_year": year,
        })
        return draft
