"""
Validation errors for SplitLedger

Every failure here is a deterministic input problem, so nothing is retried.
All errors derive from ValueError and carry a message fit for the end user.
"""
from __future__ import annotations


class SplitLedgerError(ValueError):
    """Base class for ledger validation failures"""


class InvalidAmount(SplitLedgerError):
    """Amount is missing, zero or negative"""


class InvalidParticipants(SplitLedgerError):
    """Participant list is empty, has duplicates or does not match the strategy"""


class PercentageMismatch(SplitLedgerError):
    """Percentages do not add up to 100"""


class SplitAmountMismatch(SplitLedgerError):
    """Custom split amounts do not add up to the expense total"""


class SameMemberSettlement(SplitLedgerError):
    """Settlement payer and receiver are the same member"""


class GroupArchived(SplitLedgerError):
    """Group no longer accepts new expenses or members"""


class InvalidRecord(SplitLedgerError):
    """Record is missing a required field or refers to an unknown member"""


class RecordNotFound(SplitLedgerError):
    """No expense, settlement or member with the given id"""


class OutstandingBalance(SplitLedgerError):
    """Member still owes or is owed money"""


class LastAdmin(SplitLedgerError):
    """Removing the member would leave the group without an admin"""
