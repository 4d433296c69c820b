"""DTR payroll engine: clock events, attendance, leave balances and payroll."""

__version__ = "1.0.0"
