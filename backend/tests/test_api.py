"""
Tests for the HTTP API.

Tests cover:
- Owner header requirement
- Error mapping (404, 400, 422)
- Depreciation routes end to end
- CGT routes end to end
"""
import pytest
from datetime import date

from conftest import OTHER_OWNER_ID


@pytest.fixture
def schedule_id(client, auth_headers, sample_property):
    response = client.post(
        f"/depreciation/properties/{sample_property.id}/schedules",
        json={"effective_date": "2020-07-01", "total_value": "50000"},
        headers=auth_headers
    )
    assert response.status_code == 201
    return response.json()["id"]


def asset_payload(**overrides):
    payload = {
        "asset_name": "Carpet",
        "category": "plant_equipment",
        "original_cost": "10000",
        "effective_life": "10",
        "method": "diminishing_value",
    }
    payload.update(overrides)
    return payload


class TestService:
    """Tests for service-level endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Property Ledger"


class TestAuthentication:
    """Every ledger route needs an owner."""

    def test_missing_owner_header(self, client, sample_property):
        response = client.get(f"/depreciation/properties/{sample_property.id}")
        assert response.status_code == 401

    def test_blank_owner_header(self, client, sample_property):
        response = client.get("/cgt/summary", headers={"X-Owner-Id": "  "})
        assert response.status_code == 401

    def test_validate_needs_owner(self, client):
        assert client.post("/depreciation/validate", json=[]).status_code == 401


class TestErrorMapping:
    """Typed errors become JSON with a code."""

    def test_not_found(self, client, auth_headers):
        response = client.get("/cgt/properties/999/cost-base", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"code": "PROPERTY_NOT_FOUND", "detail": "Property not found"}

    def test_foreign_property_is_not_found(self, client, sample_property):
        response = client.get(
            f"/cgt/properties/{sample_property.id}/cost-base",
            headers={"X-Owner-Id": OTHER_OWNER_ID}
        )
        assert response.status_code == 404

    def test_business_rule(self, client, auth_headers, schedule_id):
        asset = client.post(
            f"/depreciation/schedules/{schedule_id}/assets",
            json=asset_payload(original_cost="1500", effective_life="5", method="prime_cost"),
            headers=auth_headers
        ).json()

        response = client.post(f"/depreciation/assets/{asset['id']}/move-to-pool", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "POOL_THRESHOLD_EXCEEDED"

    def test_move_rejects_pooled_asset(self, client, auth_headers, schedule_id):
        asset = client.post(
            f"/depreciation/schedules/{schedule_id}/assets",
            json=asset_payload(original_cost="200", effective_life="5", method="prime_cost"),
            headers=auth_headers
        ).json()
        assert asset["pool_type"] == "immediate_writeoff"

        response = client.post(f"/depreciation/assets/{asset['id']}/move-to-pool", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "ASSET_NOT_INDIVIDUAL"

    def test_request_validation(self, client, auth_headers, schedule_id):
        response = client.post(
            f"/depreciation/schedules/{schedule_id}/assets",
            json=asset_payload(original_cost="0"),
            headers=auth_headers
        )
        assert response.status_code == 422


class TestDepreciationRoutes:
    """End-to-end depreciation flows."""

    def test_asset_lifecycle(self, client, auth_headers, sample_property, schedule_id):
        created = client.post(
            f"/depreciation/schedules/{schedule_id}/assets",
            json=asset_payload(),
            headers=auth_headers
        )
        assert created.status_code == 201
        asset = created.json()
        assert asset["pool_type"] == "individual"
        assert float(asset["yearly_deduction"]) == 2000.0

        patched = client.patch(
            f"/depreciation/assets/{asset['id']}",
            json={"original_cost": "800"},
            headers=auth_headers
        ).json()
        assert patched["pool_type"] == "low_value"

        listing = client.get(f"/depreciation/properties/{sample_property.id}", headers=auth_headers).json()
        assert len(listing["schedules"]) == 1
        assert listing["schedules"][0]["assets"][0]["id"] == asset["id"]
        assert listing["capital_works"] == []

        deleted = client.delete(f"/depreciation/assets/{asset['id']}", headers=auth_headers)
        assert deleted.json() == {"success": True}

    def test_claim_and_unclaim(self, client, auth_headers, schedule_id):
        asset = client.post(
            f"/depreciation/schedules/{schedule_id}/assets",
            json=asset_payload(original_cost="5000"),
            headers=auth_headers
        ).json()

        claimed = client.post(
            f"/depreciation/schedules/{schedule_id}/claims/2021",
            json={"amounts": [{"asset_id": asset["id"], "amount": "4200"}, {"amount": "150"}]},
            headers=auth_headers
        )
        assert claimed.status_code == 201
        assert len(claimed.json()) == 2

        moved = client.post(f"/depreciation/assets/{asset['id']}/move-to-pool", headers=auth_headers)
        assert moved.status_code == 200
        assert float(moved.json()["opening_written_down_value"]) == 800.0

        removed = client.delete(f"/depreciation/schedules/{schedule_id}/claims/2021", headers=auth_headers)
        assert removed.json() == {"success": True, "removed": 2}

    def test_claim_mismatch(self, client, auth_headers, schedule_id):
        response = client.post(
            f"/depreciation/schedules/{schedule_id}/claims/2021",
            json={"amounts": [{"asset_id": 9999, "amount": "100"}]},
            headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "CLAIM_ASSET_MISMATCH"

    def test_validate(self, client, auth_headers):
        response = client.post("/depreciation/validate", json=[
            {
                "asset_name": "Carpet",
                "category": "plant_equipment",
                "original_cost": "5000",
                "effective_life": "10",
                "method": "diminishing_value",
                "yearly_deduction": "800",
            },
            {"asset_name": "Junk"},
        ], headers=auth_headers)

        assert response.status_code == 200
        [result] = response.json()
        assert float(result["yearly_deduction"]) == 1000.0
        assert result["discrepancy"] is True

    def test_import(self, client, auth_headers, sample_property):
        response = client.post(
            f"/depreciation/properties/{sample_property.id}/schedules/import",
            json={
                "effective_date": "2020-07-01",
                "document_id": "doc-1",
                "assets": [{
                    "asset_name": "Carpet",
                    "category": "plant_equipment",
                    "original_cost": "5000",
                    "effective_life": "10",
                    "method": "diminishing_value",
                    "yearly_deduction": "800",
                }],
            },
            headers=auth_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["discrepancy_count"] == 1
        assert float(body["schedule"]["assets"][0]["yearly_deduction"]) == 1000.0

    def test_capital_works_and_projection(self, client, auth_headers, sample_property):
        created = client.post(
            f"/depreciation/properties/{sample_property.id}/capital-works",
            json={
                "description": "Building",
                "construction_date": "2020-01-01",
                "construction_cost": "400000",
                "claim_start_date": "2020-07-01",
            },
            headers=auth_headers
        )
        assert created.status_code == 201
        capital_work_id = created.json()["id"]

        patched = client.patch(
            f"/depreciation/capital-works/{capital_work_id}",
            json={"description": "Original building"},
            headers=auth_headers
        )
        assert patched.json()["description"] == "Original building"

        projection = client.get(
            f"/depreciation/properties/{sample_property.id}/projection",
            params={"from_fy": 2021, "to_fy": 2023},
            headers=auth_headers
        ).json()
        assert [row["financial_year"] for row in projection] == [2021, 2022, 2023]
        assert float(projection[0]["div43_total"]) == 10000.0

        deleted = client.delete(f"/depreciation/capital-works/{capital_work_id}", headers=auth_headers)
        assert deleted.json() == {"success": True}


class TestCGTRoutes:
    """End-to-end CGT flows."""

    def test_cost_base(self, client, auth_headers, sample_property, acquisition_transactions):
        body = client.get(f"/cgt/properties/{sample_property.id}/cost-base", headers=auth_headers).json()

        assert float(body["total_cost_base"]) == 887000.0
        assert len(body["acquisition_costs"]) == 2

    def test_record_sale(self, client, auth_headers, sample_property, acquisition_transactions):
        response = client.post(
            f"/cgt/properties/{sample_property.id}/sale",
            json={"sale_price": "1100000", "settlement_date": "2024-03-01"},
            headers=auth_headers
        )

        assert response.status_code == 201
        result = response.json()["cgt_result"]
        assert float(result["capital_gain"]) == 213000.0
        assert float(result["discounted_gain"]) == 106500.0

        again = client.post(
            f"/cgt/properties/{sample_property.id}/sale",
            json={"sale_price": "1200000", "settlement_date": "2024-05-01"},
            headers=auth_headers
        )
        assert again.status_code == 400
        assert again.json()["code"] == "PROPERTY_ALREADY_SOLD"

        sale = client.get(f"/cgt/properties/{sample_property.id}/sale", headers=auth_headers).json()
        assert sale["settlement_date"] == date(2024, 3, 1).isoformat()

        summary = client.get("/cgt/summary", params={"status": "sold"}, headers=auth_headers).json()
        assert summary["sold_count"] == 1
        assert summary["properties"][0]["sale"] is not None

    def test_sale_not_found(self, client, auth_headers, sample_property):
        response = client.get(f"/cgt/properties/{sample_property.id}/sale", headers=auth_headers)
        assert response.status_code == 404

    def test_summary_rejects_unknown_status(self, client, auth_headers):
        response = client.get("/cgt/summary", params={"status": "pending"}, headers=auth_headers)
        assert response.status_code == 422

    def test_selling_costs(self, client, auth_headers, sample_property):
        response = client.get(f"/cgt/properties/{sample_property.id}/selling-costs", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []
