"""Payroll engine services."""

from pl_payroll.services.state_machine import InvalidTransitionError, PeriodStateMachine
from pl_payroll.services.store import InMemoryPayrollStore, PayrollStore
from pl_payroll.services.ytd_ledger import YTDLedger
from pl_payroll.services.batch_processor import BatchProcessor

__all__ = [
    "BatchProcessor",
    "InMemoryPayrollStore",
    "InvalidTransitionError",
    "PayrollStore",
    "PeriodStateMachine",
    "YTDLedger",
]
