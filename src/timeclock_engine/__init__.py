"""Time-entry event log and payroll hours engine."""

__version__ = "0.1.0"
