"""
Request models validated before any payroll state is read or written.
"""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

class PayrollPeriod(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)

    @property
    def label(self) -> str:
        return f"T{self.month}/{self.year}"

class PaymentRequest(BaseModel):
    payment_method: Literal["cash", "bank_transfer"]
    payment_date: Optional[date] = None

class ApprovalRequest(BaseModel):
    payroll_ids: List[str] = Field(..., min_length=1)
