"""
Exceptions raised by the payroll engine.

Lookups raise KeyError subclasses, lifecycle violations raise ValueError
subclasses, so callers that only know the builtin types still catch them.
"""

class PayrollError(Exception):
    """Base class for payroll engine errors."""

    # KeyError would quote the message
    __str__ = Exception.__str__

class EmployeeNotFound(PayrollError, KeyError):
    def __init__(self, employee_id: str):
        super().__init__(f"employee not found: {employee_id}")
        self.employee_id = employee_id

class PayrollNotFound(PayrollError, KeyError):
    def __init__(self, payroll_id: str):
        super().__init__(f"payroll not found: {payroll_id}")
        self.payroll_id = payroll_id

class IllegalTransition(PayrollError, ValueError):
    def __init__(self, payroll_id: str, current: str, target: str):
        super().__init__(f"payroll {payroll_id} cannot move from {current} to {target}")
        self.payroll_id = payroll_id
        self.current = current
        self.target = target

class PayrollLocked(IllegalTransition):
    """Recalculation attempted on an approved or paid period."""

    def __init__(self, payroll_id: str, current: str):
        super().__init__(payroll_id, current, "calculated")
