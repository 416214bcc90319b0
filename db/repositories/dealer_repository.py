"""
Repository for dealer accounts and their band assignments.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models.dealer import DealerAccount, DealerBandAssignment


class DealerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_dealer(self, dealer_account_id: uuid.UUID, *, for_update: bool = False) -> DealerAccount | None:
        if not for_update:
            return self._session.get(DealerAccount, dealer_account_id)
        return self._session.get(
            DealerAccount,
            dealer_account_id,
            with_for_update=True,
            populate_existing=True,
        )

    def get_by_account_number(self, account_number: str) -> DealerAccount | None:
        stmt = select(DealerAccount).where(DealerAccount.account_number == account_number)
        return self._session.scalars(stmt).first()

    def create_dealer(
        self,
        *,
        account_number: str,
        company_name: str | None,
        status: str,
        entitlement: str,
    ) -> DealerAccount:
        dealer = DealerAccount(
            account_number=account_number,
            company_name=company_name,
            status=status,
            entitlement=entitlement,
        )
        self._session.add(dealer)
        self._session.flush()
        return dealer

    def get_assignments(self, dealer_account_id: uuid.UUID) -> list[DealerBandAssignment]:
        stmt = (
            select(DealerBandAssignment)
            .where(DealerBandAssignment.dealer_account_id == dealer_account_id)
            .order_by(DealerBandAssignment.part_type)
        )
        return list(self._session.scalars(stmt).all())

    def count_assignments(self, dealer_account_id: uuid.UUID) -> int:
        stmt = (
            select(func.count(func.distinct(DealerBandAssignment.part_type)))
            .where(DealerBandAssignment.dealer_account_id == dealer_account_id)
        )
        return int(self._session.scalar(stmt) or 0)

    def replace_assignments(self, *, dealer_account_id: uuid.UUID, bands: Mapping[str, str]) -> None:
        """
        Delete every assignment of the dealer, then insert ``bands``.
        Must run inside the caller's transaction.
        """

        self._session.execute(
            delete(DealerBandAssignment)
            .where(DealerBandAssignment.dealer_account_id == dealer_account_id)
            .execution_options(synchronize_session="fetch")
        )
        self._session.add_all(
            [
                DealerBandAssignment(
                    dealer_account_id=dealer_account_id,
                    part_type=part_type,
                    band_code=band_code,
                )
                for part_type, band_code in bands.items()
            ]
        )
        self._session.flush()
