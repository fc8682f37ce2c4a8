"""
Commission Report Errors

Data-quality problems in sale records never raise; they resolve to safe
defaults. These exceptions cover rejected state transitions and the
publish gate, and are raised straight back to the caller.
"""


class CommissionError(ValueError):
    """Base class for commission report errors."""


class AdjustmentTransitionError(CommissionError):
    """A collections bonus transition was rejected; state is unchanged."""


class CollectionsBonusLockedError(AdjustmentTransitionError):
    """The collections bonus is locked and must be unlocked before editing."""


class CollectionsBonusNotSelectedError(AdjustmentTransitionError):
    """Locking requires a selected collections bonus."""


class InvalidBonusTierError(AdjustmentTransitionError):
    """The value is not one of the configured collections bonus tiers."""


class PublishValidationError(CommissionError):
    """The snapshot may not be logged or exported yet."""


class AdjustmentStoreError(Exception):
    """The durable adjustment store could not be read or written."""


class InvalidManualAmountError(AdjustmentTransitionError):
    """A manual commission entry is not an amount a report row can carry."""
