"""Budget ledger logic: merchant usage index and reconciliation."""

from familybudget.ledger.merchants import (
    adjust_merchant_usage,
    apply_merchant_change,
    reindex_merchants,
)
from familybudget.ledger.reconcile import (
    DEFAULT_BATCH_SIZE,
    FIELD_MAPPING,
    FieldMapping,
    ReconcileOutcome,
    ReconciliationMatcher,
    copy_matched_fields,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "FIELD_MAPPING",
    "FieldMapping",
    "ReconcileOutcome",
    "ReconciliationMatcher",
    "adjust_merchant_usage",
    "apply_merchant_change",
    "copy_matched_fields",
    "reindex_merchants",
]
