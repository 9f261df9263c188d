"""Tests for the merchant usage index."""

from familybudget.ledger import adjust_merchant_usage, apply_merchant_change, reindex_merchants
from familybudget.models import Merchant, Transaction


def names(merchants):
    return [(m.name, m.usage_count) for m in merchants]


class TestAdjustMerchantUsage:
    """Tests for single +1/-1 deltas."""

    def test_new_merchant_is_added(self):
        result = adjust_merchant_usage([], "Costco", 1)
        assert names(result) == [("Costco", 1)]

    def test_existing_merchant_is_incremented_and_resorted(self):
        merchants = [Merchant(name="Costco", usage_count=2), Merchant(name="Shell", usage_count=2)]
        result = adjust_merchant_usage(merchants, "Shell", 1)
        assert names(result) == [("Shell", 3), ("Costco", 2)]

    def test_count_reaching_zero_removes_entry(self):
        merchants = [Merchant(name="Costco", usage_count=1)]
        assert adjust_merchant_usage(merchants, "Costco", -1) == []

    def test_decrement_of_unknown_merchant_is_ignored(self):
        merchants = [Merchant(name="Costco", usage_count=1)]
        assert names(adjust_merchant_usage(merchants, "Shell", -1)) == [("Costco", 1)]

    def test_ties_keep_existing_order(self):
        """A new merchant goes after existing ones with the same count."""
        merchants = [Merchant(name="B", usage_count=1), Merchant(name="A", usage_count=1)]
        result = adjust_merchant_usage(merchants, "C", 1)
        assert names(result) == [("B", 1), ("A", 1), ("C", 1)]

    def test_input_list_is_not_modified(self):
        merchants = [Merchant(name="Costco", usage_count=1)]
        adjust_merchant_usage(merchants, "Costco", 1)
        assert names(merchants) == [("Costco", 1)]


class TestApplyMerchantChange:
    """Tests for the add/save/delete merchant transitions."""

    def test_add(self):
        assert names(apply_merchant_change([], None, "Costco")) == [("Costco", 1)]

    def test_rename_moves_one_unit(self):
        merchants = [Merchant(name="Costco", usage_count=2)]
        result = apply_merchant_change(merchants, "Costco", "Target")
        assert names(result) == [("Costco", 1), ("Target", 1)]

    def test_same_merchant_is_noop(self):
        merchants = [Merchant(name="Costco", usage_count=2)]
        assert names(apply_merchant_change(merchants, "Costco", "Costco")) == [("Costco", 2)]

    def test_delete(self):
        merchants = [Merchant(name="Costco", usage_count=1)]
        assert apply_merchant_change(merchants, "Costco", None) == []

    def test_empty_labels_are_ignored(self):
        merchants = [Merchant(name="Costco", usage_count=1)]
        assert names(apply_merchant_change(merchants, "", "")) == [("Costco", 1)]
        assert names(apply_merchant_change(merchants, "", "Costco")) == [("Costco", 2)]


class TestReindexMerchants:
    """Tests for rebuilding the index from a transaction list."""

    def test_counts_come_from_transactions(self):
        transactions = [
            Transaction(id="1", merchant="Costco"),
            Transaction(id="2", merchant="Shell"),
            Transaction(id="3", merchant="Costco"),
            Transaction(id="4"),
        ]
        stale = [Merchant(name="Costco", usage_count=9), Merchant(name="Gone", usage_count=4)]
        assert names(reindex_merchants(stale, transactions)) == [("Costco", 2), ("Shell", 1)]

    def test_existing_order_wins_ties(self):
        transactions = [Transaction(id="1", merchant="A"), Transaction(id="2", merchant="B")]
        existing = [Merchant(name="B", usage_count=1)]
        assert names(reindex_merchants(existing, transactions)) == [("B", 1), ("A", 1)]
