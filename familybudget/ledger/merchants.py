"""
Merchant Usage Index

A budget keeps a list of merchants with a count of how many of its live
transactions use each merchant label. The list is derived state: it only
changes as a side effect of adding, saving or deleting a transaction.

Rules applied after every change:
1. An entry whose count drops to zero or below is removed
2. The list is sorted by count, highest first
3. Entries with equal counts keep their existing relative order
   (new merchants go after existing ones with the same count)
"""

from typing import Optional

from familybudget.models.budget import Merchant, Transaction


def adjust_merchant_usage(
    merchants: list[Merchant],
    name: str,
    delta: int,
) -> list[Merchant]:
    """
    Return a new merchant list with ``name``'s usage shifted by ``delta``.

    A merchant that is not in the list is only added for a positive delta.
    The input list is not modified.
    """
    result = []
    found = False
    for merchant in merchants:
        if merchant.name != name:
            result.append(merchant)
            continue
        found = True
        count = merchant.usage_count + delta
        if count > 0:
            result.append(Merchant(name=name, usage_count=count))

    if not found and delta > 0:
        result.append(Merchant(name=name, usage_count=delta))

    # list.sort is stable, so ties keep their order
    result.sort(key=lambda merchant: merchant.usage_count, reverse=True)
    return result


def apply_merchant_change(
    merchants: list[Merchant],
    old_name: Optional[str],
    new_name: Optional[str],
) -> list[Merchant]:
    """
    Move one unit of usage from ``old_name`` to ``new_name``.

    Covers all three transaction operations:
    - add:    old_name=None, new_name=<merchant>
    - save:   old_name=<previous>, new_name=<current>
    - delete: old_name=<merchant>, new_name=None

    Empty labels are ignored and an unchanged label is a no-op.
    """
    if old_name and old_name != new_name:
        merchants = adjust_merchant_usage(merchants, old_name, -1)
    if new_name and new_name != old_name:
        merchants = adjust_merchant_usage(merchants, new_name, 1)
    return merchants


def reindex_merchants(
    merchants: list[Merchant],
    transactions: list[Transaction],
) -> list[Merchant]:
    """
    Rebuild the index from a full transaction list.

    Used when a whole budget is saved. Counts come from the transactions;
    merchants already in the index keep their relative order on ties and
    newly seen merchants follow in transaction order.
    """
    counts: dict[str, int] = {}
    for transaction in transactions:
        if transaction.merchant:
            counts[transaction.merchant] = counts.get(transaction.merchant, 0) + 1

    result = []
    for merchant in merchants:
        count = counts.pop(merchant.name, 0)
        if count > 0:
            result.append(Merchant(name=merchant.name, usage_count=count))
    for name, count in counts.items():
        result.append(Merchant(name=name, usage_count=count))

    result.sort(key=lambda merchant: merchant.usage_count, reverse=True)
    return result
