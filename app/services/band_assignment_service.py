"""
app/services/band_assignment_service.py

Band assignment management for dealer accounts.

A dealer always has exactly three assignments, one per part type. Writes
replace all three inside one transaction and re-count before committing, so
no reader can observe a dealer with fewer or more.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import DealerNotFoundError, DuplicateDealerError, InvariantViolationError
from app.logging_utils import log_event
from db.models.dealer import DealerAccount, DealerStatus, Entitlement
from db.models.product import BAND_CODES, PartType
from db.repositories.dealer_repository import DealerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BandAssignmentInput:
    part_type: str
    band_code: str


def _coerce(item: BandAssignmentInput | Mapping[str, Any]) -> tuple[str, str]:
    if isinstance(item, Mapping):
        part_type = item.get("part_type", item.get("partType"))
        band_code = item.get("band_code", item.get("bandCode"))
    else:
        part_type, band_code = item.part_type, item.band_code
    return str(part_type or "").strip().upper(), str(band_code or "").strip()


def validate_band_assignments(
    assignments: Iterable[BandAssignmentInput | Mapping[str, Any]],
) -> dict[str, str]:
    """
    Check that ``assignments`` holds exactly one valid band code per part
    type and return it as ``{part_type: band_code}``.

    Raises InvariantViolationError listing every problem found.
    """

    items = [_coerce(item) for item in assignments]
    problems: list[str] = []
    bands: dict[str, str] = {}

    if len(items) != len(PartType.ALL):
        problems.append(f"Exactly {len(PartType.ALL)} band assignments are required (got {len(items)}).")

    for part_type, band_code in items:
        if part_type not in PartType.ALL:
            problems.append(f"Unknown part type {part_type!r}.")
            continue
        if part_type in bands:
            problems.append(f"Part type {part_type} is assigned more than once.")
            continue
        if band_code not in BAND_CODES:
            problems.append(f"Band code for {part_type} must be one of {', '.join(BAND_CODES)} (got {band_code!r}).")
        bands[part_type] = band_code

    missing = [part_type for part_type in PartType.ALL if part_type not in bands]
    if missing:
        problems.append(f"Missing band assignment for {', '.join(missing)}.")

    if problems:
        raise InvariantViolationError("; ".join(problems), problems=problems)
    return {part_type: bands[part_type] for part_type in PartType.ALL}


class BandAssignmentService:
    """
    Creates dealers and replaces their band assignments atomically.
    """

    def assign_bands(
        self,
        *,
        db: Session,
        dealer_account_id: uuid.UUID,
        assignments: Iterable[BandAssignmentInput | Mapping[str, Any]],
    ) -> dict[str, str]:
        bands = validate_band_assignments(assignments)
        repository = DealerRepository(db)

        with self._transaction_context(db):
            dealer = repository.get_dealer(dealer_account_id, for_update=True)
            if dealer is None:
                raise DealerNotFoundError(f"Dealer account not found: {dealer_account_id}")
            repository.replace_assignments(dealer_account_id=dealer_account_id, bands=bands)
            self._ensure_complete(repository, dealer_account_id)

        log_event(
            logger,
            logging.INFO,
            "dealer.bands_assigned",
            dealer_account_id=dealer_account_id,
            bands=bands,
        )
        return bands

    def create_dealer_account(
        self,
        *,
        db: Session,
        account_number: str,
        assignments: Iterable[BandAssignmentInput | Mapping[str, Any]],
        company_name: str | None = None,
        entitlement: str = Entitlement.SHOW_ALL,
        status: str = DealerStatus.ACTIVE,
    ) -> DealerAccount:
        """
        Create a dealer together with its three band assignments.
        """

        bands = validate_band_assignments(assignments)
        if entitlement not in Entitlement.ALL:
            raise ValueError(f"Unknown entitlement {entitlement!r}.")
        if status not in DealerStatus.ALL:
            raise ValueError(f"Unknown dealer status {status!r}.")

        normalized_account = account_number.strip().upper()
        repository = DealerRepository(db)
        try:
            with self._transaction_context(db):
                if repository.get_by_account_number(normalized_account) is not None:
                    raise DuplicateDealerError(f"Dealer account {normalized_account} already exists.")
                dealer = repository.create_dealer(
                    account_number=normalized_account,
                    company_name=company_name,
                    status=status,
                    entitlement=entitlement,
                )
                repository.replace_assignments(dealer_account_id=dealer.id, bands=bands)
                self._ensure_complete(repository, dealer.id)
        except IntegrityError as exc:
            raise DuplicateDealerError(f"Dealer account {normalized_account} already exists.") from exc

        log_event(
            logger,
            logging.INFO,
            "dealer.created",
            dealer_account_id=dealer.id,
            account_number=normalized_account,
            entitlement=entitlement,
        )
        return dealer

    def get_assignments(self, *, db: Session, dealer_account_id: uuid.UUID) -> dict[str, str]:
        repository = DealerRepository(db)
        if repository.get_dealer(dealer_account_id) is None:
            raise DealerNotFoundError(f"Dealer account not found: {dealer_account_id}")

        assignments = repository.get_assignments(dealer_account_id)
        bands = {assignment.part_type: assignment.band_code for assignment in assignments}
        if len(assignments) != len(PartType.ALL) or set(bands) != set(PartType.ALL):
            raise InvariantViolationError(
                f"Dealer {dealer_account_id} has {len(assignments)} band assignments; expected one per part type."
            )
        return bands

    @staticmethod
    def _ensure_complete(repository: DealerRepository, dealer_account_id: uuid.UUID) -> None:
        count = repository.count_assignments(dealer_account_id)
        if count != len(PartType.ALL):
            raise InvariantViolationError(
                f"Dealer {dealer_account_id} would have {count} band assignments; expected {len(PartType.ALL)}."
            )

    @staticmethod
    def _transaction_context(db: Session) -> Any:
        if db.in_transaction():
            return db.begin_nested()
        return db.begin()


@lru_cache(maxsize=1)
def get_band_assignment_service() -> BandAssignmentService:
    return BandAssignmentService()
