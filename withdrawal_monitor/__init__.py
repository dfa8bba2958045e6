"""Withdrawal request monitor: polls a WithdrawQueue and notifies subscribers."""

__version__ = "0.1.0"
