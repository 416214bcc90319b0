from __future__ import annotations

import unittest
import uuid

import pytest
from conftest import make_dealer
from sqlalchemy import func, select

from app.errors import DealerNotFoundError, DuplicateDealerError, InvariantViolationError
from app.services.band_assignment_service import (
    BandAssignmentInput,
    BandAssignmentService,
    validate_band_assignments,
)
from db.models.dealer import DealerAccount, DealerBandAssignment, Entitlement
from db.models.product import PartType

FULL_SET = [
    BandAssignmentInput(PartType.GENUINE, "2"),
    BandAssignmentInput(PartType.AFTERMARKET, "1"),
    BandAssignmentInput(PartType.BRANDED, "4"),
]


class TestValidateBandAssignments(unittest.TestCase):
    def test_full_set_is_returned_in_part_type_order(self) -> None:
        bands = validate_band_assignments(list(reversed(FULL_SET)))

        self.assertEqual(list(bands), list(PartType.ALL))
        self.assertEqual(bands[PartType.BRANDED], "4")

    def test_accepts_camel_case_mappings(self) -> None:
        bands = validate_band_assignments(
            [
                {"partType": "genuine", "bandCode": "1"},
                {"part_type": "AFTERMARKET", "band_code": "2"},
                {"partType": "BRANDED", "bandCode": 3},
            ]
        )

        self.assertEqual(bands, {"GENUINE": "1", "AFTERMARKET": "2", "BRANDED": "3"})

    def test_two_assignments_are_rejected(self) -> None:
        with self.assertRaises(InvariantViolationError) as ctx:
            validate_band_assignments(FULL_SET[:2])

        self.assertIn("Exactly 3 band assignments are required (got 2).", ctx.exception.problems)
        self.assertIn("Missing band assignment for BRANDED.", ctx.exception.problems)

    def test_duplicate_part_type_is_rejected(self) -> None:
        with self.assertRaises(InvariantViolationError) as ctx:
            validate_band_assignments(
                [
                    BandAssignmentInput(PartType.GENUINE, "1"),
                    BandAssignmentInput(PartType.GENUINE, "2"),
                    BandAssignmentInput(PartType.BRANDED, "3"),
                ]
            )

        self.assertIn("Part type GENUINE is assigned more than once.", ctx.exception.problems)

    def test_unknown_band_code_is_rejected(self) -> None:
        with self.assertRaises(InvariantViolationError):
            validate_band_assignments(
                [
                    BandAssignmentInput(PartType.GENUINE, "5"),
                    BandAssignmentInput(PartType.AFTERMARKET, "1"),
                    BandAssignmentInput(PartType.BRANDED, "1"),
                ]
            )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


@pytest.fixture()
def service() -> BandAssignmentService:
    return BandAssignmentService()


def _assignment_count(session_factory, dealer_id) -> int:
    with session_factory() as session:
        return int(
            session.scalar(
                select(func.count())
                .select_from(DealerBandAssignment)
                .where(DealerBandAssignment.dealer_account_id == dealer_id)
            )
        )


def test_create_dealer_account_writes_three_assignments(service, db, session_factory) -> None:
    dealer = service.create_dealer_account(
        db=db,
        account_number=" d2001 ",
        company_name="North Garage",
        entitlement=Entitlement.GENUINE_ONLY,
        assignments=FULL_SET,
    )

    assert dealer.account_number == "D2001"
    assert _assignment_count(session_factory, dealer.id) == 3
    assert service.get_assignments(db=db, dealer_account_id=dealer.id) == {
        "GENUINE": "2",
        "AFTERMARKET": "1",
        "BRANDED": "4",
    }


def test_create_dealer_with_incomplete_bands_writes_nothing(service, db, session_factory) -> None:
    with pytest.raises(InvariantViolationError):
        service.create_dealer_account(db=db, account_number="D2002", assignments=FULL_SET[:2])

    with session_factory() as session:
        assert session.scalar(select(func.count()).select_from(DealerAccount)) == 0


def test_duplicate_account_number(service, db) -> None:
    service.create_dealer_account(db=db, account_number="D2003", assignments=FULL_SET)

    with pytest.raises(DuplicateDealerError):
        service.create_dealer_account(db=db, account_number="d2003", assignments=FULL_SET)


def test_assign_bands_replaces_all_three(service, db, session_factory) -> None:
    dealer = make_dealer(db)

    bands = service.assign_bands(
        db=db,
        dealer_account_id=dealer.id,
        assignments=[
            BandAssignmentInput(PartType.GENUINE, "4"),
            BandAssignmentInput(PartType.AFTERMARKET, "4"),
            BandAssignmentInput(PartType.BRANDED, "4"),
        ],
    )

    assert bands == {"GENUINE": "4", "AFTERMARKET": "4", "BRANDED": "4"}
    assert _assignment_count(session_factory, dealer.id) == 3
    with session_factory() as session:
        codes = session.scalars(
            select(DealerBandAssignment.band_code).where(DealerBandAssignment.dealer_account_id == dealer.id)
        ).all()
        assert set(codes) == {"4"}


def test_invalid_reassignment_keeps_existing_bands(service, db, session_factory) -> None:
    dealer = make_dealer(db)

    with pytest.raises(InvariantViolationError):
        service.assign_bands(db=db, dealer_account_id=dealer.id, assignments=FULL_SET[:1])

    assert _assignment_count(session_factory, dealer.id) == 3


def test_assign_bands_for_unknown_dealer(service, db) -> None:
    with pytest.raises(DealerNotFoundError):
        service.assign_bands(db=db, dealer_account_id=uuid.uuid4(), assignments=FULL_SET)


def test_nested_call_uses_savepoint(service, db, session_factory) -> None:
    dealer = make_dealer(db)

    with db.begin():
        service.assign_bands(db=db, dealer_account_id=dealer.id, assignments=FULL_SET)
        assert db.in_nested_transaction() is False

    with session_factory() as session:
        codes = dict(
            session.execute(
                select(DealerBandAssignment.part_type, DealerBandAssignment.band_code).where(
                    DealerBandAssignment.dealer_account_id == dealer.id
                )
            ).all()
        )
        assert codes == {"GENUINE": "2", "AFTERMARKET": "1", "BRANDED": "4"}


def test_get_assignments_detects_broken_dealer(service, db) -> None:
    dealer = make_dealer(db, bands={PartType.GENUINE: "1"})

    with pytest.raises(InvariantViolationError):
        service.get_assignments(db=db, dealer_account_id=dealer.id)
