"""
Tests for the Family Budget data models.

Test strategy:
1. Unit tests for individual components (models, ledger functions)
2. Service tests against the in-memory document store
3. No real API calls in tests (fake verifier and mail sender)
"""

import pytest
from datetime import datetime, timezone

from familybudget.models import (
    Account,
    Budget,
    CreateInviteRequest,
    EditAction,
    EditEvent,
    Family,
    ImportedTransactionDoc,
    Merchant,
    ReconcileRequest,
    Transaction,
    UserRef,
)


class TestBudgetModels:
    """Tests for budget-related Pydantic models."""

    def test_make_id_is_owner_and_month(self):
        """Test the composite budget document key."""
        assert Budget.make_id("uid-1", "2024-06") == "uid-1_2024-06"

    def test_budget_month_format(self):
        """Test that the month must be YYYY-MM."""
        with pytest.raises(ValueError):
            Budget(family_id="f1", user_id="u1", month="June 2024")

    def test_budget_document_uses_camel_case(self):
        """Test stored keys are camelCase and omit the budget id."""
        budget = Budget(
            budget_id="u1_2024-06",
            family_id="f1",
            user_id="u1",
            month="2024-06",
            income_target=5000.0,
        )
        document = budget.to_document()
        assert document["familyId"] == "f1"
        assert document["incomeTarget"] == 5000.0
        assert "budgetId" not in document
        assert "budget_id" not in document

    def test_budget_from_document(self):
        """Test a stored document loads with the id overlaid."""
        budget = Budget.from_document(
            {
                "familyId": "f1",
                "userId": "u1",
                "month": "2024-06",
                "transactions": [{"id": "t1", "merchant": "Costco", "amount": 12.5}],
                "merchants": [{"name": "Costco", "usageCount": 1}],
            },
            budget_id="u1_2024-06",
        )
        assert budget.budget_id == "u1_2024-06"
        assert budget.transactions[0].merchant == "Costco"
        assert budget.merchants[0].usage_count == 1

    def test_find_transaction_index(self):
        """Test lookup by transaction id."""
        budget = Budget(
            family_id="f1",
            user_id="u1",
            month="2024-06",
            transactions=[Transaction(id="a"), Transaction(id="b")],
        )
        assert budget.find_transaction_index("b") == 1
        assert budget.find_transaction_index("missing") == -1
        assert budget.find_transaction_index(None) == -1

    def test_merchant_count_must_be_positive(self):
        """Test that merchant entries never hold a zero count."""
        with pytest.raises(ValueError):
            Merchant(name="Costco", usage_count=0)

    def test_merchant_strips_whitespace(self):
        """Test that whitespace is stripped from merchant names."""
        assert Merchant(name="  Costco  ").name == "Costco"

    def test_reconcile_request_defaults(self):
        """Test match defaults on and ignore defaults off."""
        request = ReconcileRequest.model_validate(
            {"budgetTransactionId": "t1", "importedTransactionId": "i1"}
        )
        assert request.match is True
        assert request.ignore is False

    def test_imported_doc_find_entry_index(self):
        """Test lookup by imported transaction id."""
        doc = ImportedTransactionDoc.model_validate(
            {"id": "d1", "importedTransactions": [{"id": "i1"}, {"id": "i2"}]}
        )
        assert doc.find_entry_index("i2") == 1
        assert doc.find_entry_index("nope") == -1


class TestFamilyModels:
    """Tests for family, account and invite models."""

    def test_is_member_uses_member_uids(self):
        """Test membership comes from the uid index."""
        family = Family(
            id="f1",
            name="Rivera",
            owner_uid="u1",
            members=[UserRef(uid="u1")],
            member_uids=["u1"],
        )
        assert family.is_member("u1")
        assert not family.is_member("u2")
        assert family.find_member_index("u1") == 0

    def test_account_category_for(self):
        """Test liabilities are credit cards and loans."""
        assert Account.category_for("CreditCard") == "Liability"
        assert Account.category_for("Loan") == "Liability"
        assert Account.category_for("Bank") == "Asset"
        assert Account.category_for("Property") == "Asset"

    def test_account_category_values(self):
        """Test category only accepts Asset or Liability."""
        with pytest.raises(ValueError):
            Account(name="Checking", type="Bank", category="Equity")

    def test_invite_request_validates_email(self):
        """Test that the invitee email must be an address."""
        with pytest.raises(ValueError):
            CreateInviteRequest(family_id="f1", invitee_email="not-an-email")


class TestEditEventModels:
    """Tests for edit-history events."""

    def test_edit_event_creation(self):
        """Test EditEvent stores actor and action."""
        event = EditEvent(user_id="u1", user_email="a@example.com", action=EditAction.ADD_TRANSACTION)
        assert event.timestamp.tzinfo is not None
        assert event.action == EditAction.ADD_TRANSACTION

    def test_edit_event_is_immutable(self):
        """Test that edit events cannot be changed once built."""
        event = EditEvent(action=EditAction.UPDATE_BUDGET)
        with pytest.raises(ValueError):
            event.user_id = "someone-else"

    def test_edit_event_document(self):
        """Test the stored form uses the plain action string."""
        timestamp = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        event = EditEvent(user_id="u1", timestamp=timestamp, action=EditAction.DELETE_TRANSACTION)
        document = event.to_document()
        assert document == {
            "userId": "u1",
            "userEmail": "",
            "timestamp": timestamp,
            "action": "delete_transaction",
        }

    def test_edit_event_to_log_dict(self):
        """Test conversion for structured logging."""
        event = EditEvent(user_id="u1", action=EditAction.UPDATE_BUDGET)
        log_dict = event.to_log_dict("u1_2024-06")
        assert log_dict["budget_id"] == "u1_2024-06"
        assert log_dict["action"] == "update_budget"
        assert "timestamp" in log_dict

    def test_all_actions_exist(self):
        """Test all edit actions are defined."""
        assert {action.value for action in EditAction} == {
            "add_transaction",
            "update_transaction",
            "delete_transaction",
            "update_budget",
        }
