"""
Account Service

Accounts and net-worth snapshots live as lists on the family document.
Every operation requires the caller to be a family member and runs as a
single atomic update of that document.
"""

from typing import Optional

import structlog

from familybudget.models.common import utc_now
from familybudget.models.family import (
    Account,
    AccountDetails,
    Family,
    ImportAccountEntry,
    Snapshot,
    SnapshotAccount,
)
from familybudget.models.user import AuthenticatedUser
from familybudget.services.errors import NotFoundError
from familybudget.services.family_service import FamilyService
from familybudget.services.storage import DocumentStore


def _signed_value(account_type: str, value: Optional[float]) -> float:
    """Liabilities count against net worth."""
    value = value or 0.0
    return -value if Account.category_for(account_type) == "Liability" else value


class AccountService:
    """Family accounts, snapshots and bulk balance import."""

    def __init__(self, store: DocumentStore, family_service: FamilyService):
        self._store = store
        self._families = family_service
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def get_accounts(self, family_id: str, user: AuthenticatedUser) -> list[Account]:
        family = await self._families.require_member(family_id, user)
        return family.accounts

    async def get_account(
        self,
        family_id: str,
        account_id: str,
        user: AuthenticatedUser,
    ) -> Account:
        family = await self._families.require_member(family_id, user)
        for account in family.accounts:
            if account.id == account_id:
                return account
        raise NotFoundError(f"Account {account_id} not found in family {family_id}")

    async def save_account(
        self,
        family_id: str,
        account: Account,
        user: AuthenticatedUser,
    ) -> Account:
        """Insert the account, or replace the one with the same id in place."""
        await self._families.require_member(family_id, user)

        now = utc_now().isoformat()
        account = account.model_copy(update={
            "id": account.id or self._store.new_id(),
            "category": account.category or Account.category_for(account.type),
            "created_at": account.created_at or now,
            "updated_at": now,
        })

        def change(family: Family) -> None:
            for index, existing in enumerate(family.accounts):
                if existing.id == account.id:
                    family.accounts[index] = account
                    return
            family.accounts.append(account)

        await self._families.update_family(family_id, change)
        return account

    async def delete_account(
        self,
        family_id: str,
        account_id: str,
        user: AuthenticatedUser,
    ) -> None:
        await self._families.require_member(family_id, user)

        def change(family: Family) -> None:
            family.accounts = [a for a in family.accounts if a.id != account_id]

        await self._families.update_family(family_id, change)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def get_snapshots(self, family_id: str, user: AuthenticatedUser) -> list[Snapshot]:
        """Snapshots, newest first."""
        family = await self._families.require_member(family_id, user)
        return sorted(family.snapshots, key=lambda snapshot: snapshot.date, reverse=True)

    async def save_snapshot(
        self,
        family_id: str,
        snapshot: Snapshot,
        user: AuthenticatedUser,
    ) -> Snapshot:
        await self._families.require_member(family_id, user)
        snapshot = snapshot.model_copy(update={
            "id": snapshot.id or self._store.new_id(),
            "created_at": snapshot.created_at or utc_now().isoformat(),
        })

        def change(family: Family) -> None:
            for index, existing in enumerate(family.snapshots):
                if existing.id == snapshot.id:
                    family.snapshots[index] = snapshot
                    return
            family.snapshots.append(snapshot)

        await self._families.update_family(family_id, change)
        return snapshot

    async def delete_snapshot(
        self,
        family_id: str,
        snapshot_id: str,
        user: AuthenticatedUser,
    ) -> None:
        await self.batch_delete_snapshots(family_id, [snapshot_id], user)

    async def batch_delete_snapshots(
        self,
        family_id: str,
        snapshot_ids: list[str],
        user: AuthenticatedUser,
    ) -> None:
        await self._families.require_member(family_id, user)
        doomed = set(snapshot_ids)

        def change(family: Family) -> None:
            family.snapshots = [s for s in family.snapshots if s.id not in doomed]

        await self._families.update_family(family_id, change)

    # -------------------------------------------------------------------------
    # Bulk import
    # -------------------------------------------------------------------------

    async def import_accounts_and_snapshots(
        self,
        family_id: str,
        entries: list[ImportAccountEntry],
        user: AuthenticatedUser,
    ) -> Family:
        """
        Turn dated balance rows into accounts and snapshots.

        Rows are grouped by (account name, type) into accounts, taking the
        balance of the latest-dated row; an existing account with the same
        name and type is replaced and keeps its id. Rows are also grouped
        by date into one snapshot per date.
        """
        await self._families.require_member(family_id, user)

        groups: dict[tuple[str, str], list[ImportAccountEntry]] = {}
        for entry in entries:
            groups.setdefault((entry.account_name, entry.type), []).append(entry)
        by_date: dict[str, list[ImportAccountEntry]] = {}
        for entry in entries:
            by_date.setdefault(entry.date, []).append(entry)

        account_ids = {key: self._store.new_id() for key in groups}
        snapshot_ids = {date: self._store.new_id() for date in by_date}

        def change(family: Family) -> None:
            imported: dict[tuple[str, str], Account] = {}
            for key, rows in groups.items():
                first = rows[0]
                latest = max(rows, key=lambda row: row.date)
                index = next(
                    (i for i, a in enumerate(family.accounts) if (a.name, a.type) == key),
                    -1,
                )
                account = Account(
                    id=family.accounts[index].id if index >= 0 else account_ids[key],
                    name=first.account_name,
                    type=first.type,
                    category=Account.category_for(first.type),
                    account_number=first.account_number,
                    institution=first.institution,
                    balance=latest.balance,
                    details=AccountDetails(
                        interest_rate=first.interest_rate,
                        appraised_value=first.appraised_value,
                        address=first.address,
                    ),
                    created_at=latest.date,
                    updated_at=latest.date,
                )
                if index >= 0:
                    family.accounts[index] = account
                else:
                    family.accounts.append(account)
                imported[key] = account

            for date, rows in by_date.items():
                family.snapshots.append(Snapshot(
                    id=snapshot_ids[date],
                    date=date,
                    accounts=[
                        SnapshotAccount(
                            account_id=imported[(row.account_name, row.type)].id,
                            account_name=row.account_name,
                            type=row.type,
                            value=row.balance or 0.0,
                        )
                        for row in rows
                    ],
                    net_worth=sum(_signed_value(row.type, row.balance) for row in rows),
                    created_at=date,
                ))

        family = await self._families.update_family(family_id, change)
        self._logger.info(
            "accounts_imported",
            family_id=family_id,
            accounts=len(groups),
            snapshots=len(by_date),
        )
        return family
