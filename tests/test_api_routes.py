"""
tests/test_api_routes.py

HTTP contract tests for the import, dealer and pricing routers.

The routers are mounted on a bare FastAPI app with the database session and
service factories overridden, so no PostgreSQL server is needed. Background
tasks run before TestClient returns, so a submitted batch is already final
when the test polls it.
"""

from __future__ import annotations

import uuid

import pytest
from conftest import make_dealer, make_product
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import dealers_router, imports_router, pricing_router
from app.config import ImportSettings, PricingSettings, get_import_settings, get_pricing_settings
from app.services.import_pipeline_service import get_import_pipeline_service
from db.models.dealer import Entitlement
from db.models.import_batch import ImportBatchStatus
from db.models.product import PartType
from db.session import get_db

MIXED_PRODUCTS_CSV = (
    "productCode,description,partType,freeStock,price,bandLevel\n"
    ",Missing code,GENUINE,1,1.00,\n"
    "XYZ,Bad type,INVALID_TYPE,1,1.00,\n"
    "OK1,Good part,GENUINE,10,5.00,\n"
).encode()

BANDS = [
    {"part_type": "GENUINE", "band_code": "2"},
    {"part_type": "AFTERMARKET", "band_code": "1"},
    {"part_type": "BRANDED", "band_code": "3"},
]


@pytest.fixture()
def api(session_factory, pipeline) -> FastAPI:
    application = FastAPI()
    application.include_router(imports_router)
    application.include_router(pricing_router)
    application.include_router(dealers_router)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_import_pipeline_service] = lambda: pipeline
    application.dependency_overrides[get_import_settings] = lambda: ImportSettings(max_upload_bytes=4096)
    application.dependency_overrides[get_pricing_settings] = lambda: PricingSettings(max_products_per_request=3)
    return application


@pytest.fixture()
def client(api: FastAPI) -> TestClient:
    return TestClient(api)


def _upload(client: TestClient, content: bytes, *, import_type: str = "genuine-products", filename: str = "genuine.csv"):
    return client.post(
        f"/imports/{import_type}",
        params={"created_by": "admin@example.com"},
        files={"file": (filename, content, "text/csv")},
    )


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


class TestImportRoutes:
    def test_submit_then_poll(self, client: TestClient) -> None:
        response = _upload(client, MIXED_PRODUCTS_CSV)

        assert response.status_code == 202
        accepted = response.json()
        assert accepted["status"] == ImportBatchStatus.PROCESSING
        assert accepted["total_rows"] == 3

        polled = client.get(f"/imports/{accepted['batch_id']}")
        assert polled.status_code == 200
        body = polled.json()
        assert body["status"] == ImportBatchStatus.SUCCEEDED_WITH_ERRORS
        assert (body["total_rows"], body["valid_rows"], body["invalid_rows"]) == (3, 1, 2)
        assert body["created_by"] == "admin@example.com"
        assert body["errors"]["total"] == 2
        assert [item["row_number"] for item in body["errors"]["items"]] == [1, 2]

    def test_missing_columns_rejected_before_staging(self, client: TestClient) -> None:
        response = _upload(client, b"productCode,description\nA1,Filter\n")

        assert response.status_code == 400
        assert response.json()["detail"]["missing_columns"] == ["partType", "freeStock", "price"]
        assert client.get("/imports").json()["batches"] == []

    def test_header_only_file_rejected(self, client: TestClient) -> None:
        response = _upload(client, b"productCode,partType,freeStock,price\n")

        assert response.status_code == 400
        assert client.get("/imports").json()["batches"] == []

    def test_unknown_import_type(self, client: TestClient) -> None:
        response = _upload(client, MIXED_PRODUCTS_CSV, import_type="invoices")

        assert response.status_code == 400

    def test_non_delimited_file_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/imports/genuine-products",
            files={"file": ("catalog.pdf", b"%PDF-1.7", "application/pdf")},
        )

        assert response.status_code == 400

    def test_oversize_upload_rejected(self, client: TestClient) -> None:
        response = _upload(client, b"productCode,partType,freeStock,price\n" + b"A1,GENUINE,1,1.00\n" * 400)

        assert response.status_code == 413

    def test_list_filters_by_status(self, client: TestClient) -> None:
        _upload(client, MIXED_PRODUCTS_CSV)

        assert len(client.get("/imports", params={"status": "SUCCEEDED_WITH_ERRORS"}).json()["batches"]) == 1
        assert client.get("/imports", params={"status": "FAILED"}).json()["batches"] == []

    def test_error_export(self, client: TestClient) -> None:
        batch_id = _upload(client, MIXED_PRODUCTS_CSV).json()["batch_id"]

        response = client.get(f"/imports/{batch_id}/errors/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["x-row-count"] == "2"
        assert response.text.splitlines()[0] == "rowNumber,message"

    def test_unknown_batch(self, client: TestClient) -> None:
        assert client.get(f"/imports/{uuid.uuid4()}").status_code == 404
        assert client.get(f"/imports/{uuid.uuid4()}/errors/export").status_code == 404
        assert client.post(f"/imports/{uuid.uuid4()}/abandon").status_code == 404

    def test_abandon_finished_batch_conflicts(self, client: TestClient) -> None:
        batch_id = _upload(client, MIXED_PRODUCTS_CSV).json()["batch_id"]

        assert client.post(f"/imports/{batch_id}/abandon").status_code == 409


# ---------------------------------------------------------------------------
# Dealers
# ---------------------------------------------------------------------------


class TestDealerRoutes:
    def test_create_and_read_bands(self, client: TestClient) -> None:
        response = client.post("/dealers", json={"account_number": "d3001", "assignments": BANDS})

        assert response.status_code == 201
        dealer = response.json()
        assert dealer["account_number"] == "D3001"
        assert dealer["bands"] == {"GENUINE": "2", "AFTERMARKET": "1", "BRANDED": "3"}

        bands = client.get(f"/dealers/{dealer['dealer_account_id']}/bands").json()["bands"]
        assert bands == dealer["bands"]

    def test_two_bands_rejected_by_schema(self, client: TestClient) -> None:
        response = client.post("/dealers", json={"account_number": "D3002", "assignments": BANDS[:2]})

        assert response.status_code == 422

    def test_duplicate_part_type_rejected(self, client: TestClient) -> None:
        assignments = [BANDS[0], BANDS[0], BANDS[2]]
        response = client.post("/dealers", json={"account_number": "D3003", "assignments": assignments})

        assert response.status_code == 422
        assert "Part type GENUINE is assigned more than once." in response.json()["detail"]["problems"]

    def test_duplicate_account_number(self, client: TestClient) -> None:
        client.post("/dealers", json={"account_number": "D3004", "assignments": BANDS})

        response = client.post("/dealers", json={"account_number": "D3004", "assignments": BANDS})

        assert response.status_code == 409

    def test_replace_bands(self, client: TestClient, db) -> None:
        dealer = make_dealer(db)
        new_bands = [{"part_type": item["part_type"], "band_code": "4"} for item in BANDS]

        response = client.put(f"/dealers/{dealer.id}/bands", json={"assignments": new_bands})

        assert response.status_code == 200
        assert set(response.json()["bands"].values()) == {"4"}

    def test_replace_bands_unknown_dealer(self, client: TestClient) -> None:
        response = client.put(f"/dealers/{uuid.uuid4()}/bands", json={"assignments": BANDS})

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


class TestPricingRoutes:
    def test_resolve(self, client: TestClient, db) -> None:
        dealer = make_dealer(db)
        product = make_product(db, product_code="ABC-123", bands={"1": "40.00", "2": "45.50"})
        missing_id = uuid.uuid4()

        response = client.post(
            "/pricing/resolve",
            json={"dealer_account_id": str(dealer.id), "product_ids": [str(product.id), str(missing_id)]},
        )

        assert response.status_code == 200
        body = response.json()
        entry = body["prices"][str(product.id)]
        assert entry["status"] == "resolved"
        assert entry["price"] == "45.50"
        assert entry["source"] == "band"
        assert body["prices"][str(missing_id)]["reason"] == "product_not_found"
        assert body["unresolved"] == [str(missing_id)]

    def test_strict_mode_blocks_unresolved(self, client: TestClient, db) -> None:
        dealer = make_dealer(db)
        product = make_product(db, product_code="NOPRICE")

        response = client.post(
            "/pricing/resolve",
            params={"strict": "true"},
            json={"dealer_account_id": str(dealer.id), "product_ids": [str(product.id)]},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["unresolved"] == [str(product.id)]

    def test_entitlement_hides_other_part_types(self, client: TestClient, db) -> None:
        dealer = make_dealer(db, entitlement=Entitlement.GENUINE_ONLY)
        aftermarket = make_product(db, product_code="AM-1", part_type=PartType.AFTERMARKET, bands={"1": "9.99"})

        response = client.post(
            "/pricing/resolve",
            json={"dealer_account_id": str(dealer.id), "product_ids": [str(aftermarket.id)]},
        )

        assert response.status_code == 200
        entry = response.json()["prices"][str(aftermarket.id)]
        assert entry["status"] == "unresolved"
        assert entry["reason"] == "not_entitled"
        assert entry["price"] is None
        assert response.json()["unresolved"] == [str(aftermarket.id)]

    def test_unknown_dealer(self, client: TestClient) -> None:
        response = client.post(
            "/pricing/resolve",
            json={"dealer_account_id": str(uuid.uuid4()), "product_ids": [str(uuid.uuid4())]},
        )

        assert response.status_code == 404

    def test_request_size_limit(self, client: TestClient, db) -> None:
        dealer = make_dealer(db)

        response = client.post(
            "/pricing/resolve",
            json={"dealer_account_id": str(dealer.id), "product_ids": [str(uuid.uuid4()) for _ in range(4)]},
        )

        assert response.status_code == 422
