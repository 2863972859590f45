from typing import Any, Dict, List

import pandas as pd

ROW_AMOUNTS = [
    "base_salary", "allowances", "gross_salary", "social_insurance",
    "health_insurance", "unemployment_insurance", "pit", "net_salary",
]

TOTAL_KEYS = {
    "base_salary": "total_base_salary",
    "allowances": "total_allowances",
    "gross_salary": "total_gross",
    "social_insurance": "total_social_insurance",
    "health_insurance": "total_health_insurance",
    "unemployment_insurance": "total_unemployment_insurance",
    "pit": "total_pit",
    "net_salary": "total_net_salary",
}

def format_days(working_days: float, standard_days: int) -> str:
    return f"{working_days:g}/{standard_days}"

class SalaryBookReporter:
    """Shapes stored payroll rows for the export layer; nothing else is exposed to it."""

    def __init__(self, month: int, year: int):
        self.month = month
        self.year = year

    @property
    def period(self) -> str:
        return f"Tháng {self.month}/{self.year}"

    def rows(self, payrolls) -> List[Dict[str, Any]]:
        out = []
        for stt, p in enumerate(payrolls, start=1):
            emp = p.employee
            row = {
                "stt": stt,
                "name": emp.name if emp else None,
                "position": emp.position if emp else None,
                "working_days": format_days(p.working_days, p.standard_days),
            }
            row.update({k: getattr(p, k) for k in ROW_AMOUNTS})
            row["status"] = p.status
            out.append(row)
        return out

    def totals(self, rows: List[Dict[str, Any]]) -> Dict[str, int]:
        return {TOTAL_KEYS[k]: sum(r[k] for r in rows) for k in ROW_AMOUNTS}

    def build(self, payrolls) -> Dict[str, Any]:
        rows = self.rows(payrolls)
        return {
            "salary_book": rows,
            "totals": self.totals(rows),
            "period": self.period,
            "employee_count": len(rows),
        }

    @staticmethod
    def to_dataframe(book: Dict[str, Any]) -> pd.DataFrame:
        """Rows plus a trailing totals row, in column order for the export templates."""
        columns = ["stt", "name", "position", "working_days"] + ROW_AMOUNTS + ["status"]
        df = pd.DataFrame(book["salary_book"], columns=columns)
        totals_row = {k: book["totals"][TOTAL_KEYS[k]] for k in ROW_AMOUNTS}
        totals_row["name"] = "Tổng cộng"
        return pd.concat([df, pd.DataFrame([totals_row], columns=columns)], ignore_index=True)

def payroll_totals(payrolls) -> Dict[str, int]:
    """Summary figures for the payroll screen."""
    return {
        "total_gross": sum(p.gross_salary for p in payrolls),
        "total_net": sum(p.net_salary for p in payrolls),
        "total_insurance_employee": sum(p.employee_insurance for p in payrolls),
        "total_insurance_employer": sum(p.employer_insurance for p in payrolls),
        "total_pit": sum(p.pit for p in payrolls),
    }
