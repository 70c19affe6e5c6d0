"""Integration tests for API endpoints"""

import uuid
import pytest
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError
from cepa_fees.domain.exceptions import LookupUnavailable
from cepa_fees.infrastructure.database.models import FeeCalculation, FeeStructure
from cepa_fees.infrastructure.database.repositories import FeeStructureRepository


def calculation_body(**overrides):
    body = {
        "activity_type": "new",
        "permit_type": "Environment Permit",
        "activity_level": 1,
    }
    body.update(overrides)
    return body


def test_health_endpoint(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_request_id_header(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_metrics_endpoint(client: TestClient):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "cepa_fee_calculation_total" in response.text


def test_calculate_fees_from_database(client: TestClient, seeded_fee_structures):
    response = client.post("/v1/fees/calculate", json=calculation_body())

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "database"
    assert data["administration_fee"] == "3000.00"
    assert data["technical_fee"] == "15500.00"
    assert data["total_fee"] == "18500.00"
    assert data["processing_days"] == 30
    assert data["technical_form"] == "Form 9"
    assert [c["component_name"] for c in data["components"]] == ["Administration Fee", "Technical Fee"]
    assert uuid.UUID(data["calculation_id"])


def test_calculate_fees_with_surcharges(client: TestClient, seeded_fee_structures):
    response = client.post(
        "/v1/fees/calculate",
        json=calculation_body(
            activity_level=3,
            duration_years=2,
            project_cost_kina="6000000",
            land_area_hectares="6000",
            ods_chemical_type="Halons",
            waste_type="medical",
        ),
    )

    assert response.status_code == 200
    data = response.json()
    # Red Category: 73000 / 365 x (90 + 30) = 24000
    assert data["processing_days"] == 120
    assert Decimal(data["administration_fee"]) == Decimal("24000")
    special = {c["component_name"]: Decimal(c["calculated_amount"]) for c in data["components"] if c["fee_category"] == "Special"}
    assert special == {"ODS Chemical Surcharge": Decimal("1200"), "Waste Management Fee": Decimal("1560")}
    assert Decimal(data["total_fee"]) == sum(Decimal(c["calculated_amount"]) for c in data["components"])
    assert [(a["basis"], a["percentage"]) for a in data["adjustments"]] == [("project_cost", 50), ("land_area", 15)]


def test_calculate_fees_falls_back_for_inactive_structure(client: TestClient, seeded_fee_structures):
    response = client.post(
        "/v1/fees/calculate",
        json=calculation_body(activity_type="renewal", permit_type="Water Permit"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "fallback"
    assert data["processing_days"] == 30
    assert data["technical_form"] == "Form 10"


def test_calculate_fees_missing_parameters(client: TestClient):
    response = client.post("/v1/fees/calculate", json={"activity_type": "new"})

    assert response.status_code == 422
    assert response.json()["detail"]["fields"] == ["permit_type", "activity_level"]


def test_calculate_fees_negative_cost(client: TestClient):
    response = client.post("/v1/fees/calculate", json=calculation_body(project_cost_kina=-5))

    assert response.status_code == 422
    assert response.json()["detail"]["fields"] == ["project_cost_kina"]


def test_calculate_fees_lookup_unavailable(client: TestClient):
    with patch(
        "cepa_fees.infrastructure.database.repositories.FeeStructureRepository.find_fee_structure",
        side_effect=LookupUnavailable("database offline"),
    ):
        response = client.post("/v1/fees/calculate", json=calculation_body())

    assert response.status_code == 503


def test_repository_wraps_database_errors(db, seeded_fee_structures):
    repo = FeeStructureRepository(db)

    with patch.object(db, "query", side_effect=OperationalError("SELECT", {}, Exception("gone"))):
        with pytest.raises(LookupUnavailable):
            repo.find_fee_structure("Environment Permit", "new", "Green Category")


def test_repository_returns_active_record(db, seeded_fee_structures):
    repo = FeeStructureRepository(db)

    record = repo.find_fee_structure("Environment Permit", "new", "Red Category")
    assert record.base_processing_days == 90
    assert record.annual_recurrent_fee == Decimal("73000")
    assert repo.find_fee_structure("Water Permit", "renewal", "Green Category") is None


def test_fee_history(client: TestClient, seeded_fee_structures):
    for duration in (1, 2, 3):
        client.post(
            "/v1/fees/calculate",
            json=calculation_body(duration_years=duration, permit_application_id="APP-001"),
        )
    client.post("/v1/fees/calculate", json=calculation_body())

    response = client.get("/v1/fees/history", params={"permit_application_id": "APP-001"})

    assert response.status_code == 200
    data = response.json()
    assert data["permit_application_id"] == "APP-001"
    assert [item["processing_days"] for item in data["calculations"]] == [90, 60, 30]


def test_list_fee_structures(client: TestClient, seeded_fee_structures):
    response = client.get("/v1/fee-structures")

    assert response.status_code == 200
    structures = response.json()["fee_structures"]
    assert len(structures) == 2
    assert {s["fee_category"] for s in structures} == {"Green Category", "Red Category"}


def test_create_and_fetch_invoice(client: TestClient, seeded_fee_structures, revenue_client):
    calculation = client.post(
        "/v1/fees/calculate",
        json=calculation_body(permit_application_id="APP-002"),
    ).json()

    response = client.post("/v1/invoices", json={"calculation_id": calculation["calculation_id"]})

    assert response.status_code == 201
    invoice = response.json()
    assert invoice["amount"] == "18500.00"
    assert Decimal(invoice["balance_due"]) == Decimal("18500")
    assert Decimal(invoice["amount_paid"]) == 0
    assert invoice["currency"] == "PGK"
    assert invoice["status"] == "pending"
    assert invoice["permit_application_id"] == "APP-002"
    assert invoice["due_date"] == (date.today() + timedelta(days=30)).isoformat()
    assert invoice["invoice_number"].startswith("INV-")

    assert len(revenue_client.events) == 1
    assert revenue_client.events[0]["event"] == "INVOICE_ISSUED"
    assert revenue_client.events[0]["invoice_number"] == invoice["invoice_number"]
    assert revenue_client.events[0]["amount"] == "18500.00"

    fetched = client.get(f"/v1/invoices/{invoice['invoice_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["invoice_number"] == invoice["invoice_number"]


def test_create_invoice_unknown_calculation(client: TestClient):
    response = client.post("/v1/invoices", json={"calculation_id": str(uuid.uuid4())})
    assert response.status_code == 404


def test_create_invoice_invalid_calculation_id(client: TestClient):
    response = client.post("/v1/invoices", json={"calculation_id": "not-a-uuid"})
    assert response.status_code == 400


def test_get_invoice_not_found(client: TestClient):
    assert client.get(f"/v1/invoices/{uuid.uuid4()}").status_code == 404
    assert client.get("/v1/invoices/bogus").status_code == 400


def create_invoice_for(client: TestClient, **overrides) -> dict:
    calculation = client.post("/v1/fees/calculate", json=calculation_body(**overrides)).json()
    response = client.post("/v1/invoices", json={"calculation_id": calculation["calculation_id"]})
    assert response.status_code == 201
    return response.json()


def test_calculate_fees_rejects_negative_structure(client: TestClient, environment_permit_structure):
    negative = replace(environment_permit_structure, annual_recurrent_fee=Decimal("-36500"))

    with patch(
        "cepa_fees.infrastructure.database.repositories.FeeStructureRepository.find_fee_structure",
        return_value=negative,
    ):
        response = client.post("/v1/fees/calculate", json=calculation_body())

    assert response.status_code == 503
    assert response.json()["detail"] == "Fee structure data invalid"


def test_fee_structures_table_rejects_negative_amounts(db):
    db.add(
        FeeStructure(
            permit_type="Environment Permit",
            activity_type="new",
            fee_category="Green Category",
            annual_recurrent_fee=Decimal("36500.00"),
            work_plan_amount=Decimal("-15500.00"),
            administration_form="Form 2",
            technical_form="Form 9",
        )
    )

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_calculation_responses_keep_exact_cents(client: TestClient, seeded_fee_structures):
    # Red Category: 73000 / 365 x 90 = 18000.00 exactly; ODS HCFC below cost threshold
    response = client.post(
        "/v1/fees/calculate",
        json=calculation_body(activity_level=3, ods_chemical_type="HCFC"),
    )

    data = response.json()
    assert isinstance(data["total_fee"], str)
    assert Decimal(data["total_fee"]) == sum(Decimal(c["calculated_amount"]) for c in data["components"])

    structures = client.get("/v1/fee-structures").json()["fee_structures"]
    assert {s["annual_recurrent_fee"] for s in structures} == {"36500.00", "73000.00"}


def test_create_invoice_twice_conflicts(client: TestClient, seeded_fee_structures, revenue_client):
    calculation = client.post("/v1/fees/calculate", json=calculation_body()).json()

    first = client.post("/v1/invoices", json={"calculation_id": calculation["calculation_id"]})
    second = client.post("/v1/invoices", json={"calculation_id": calculation["calculation_id"]})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"]["invoice_id"] == first.json()["invoice_id"]
    assert len(revenue_client.events) == 1


def test_create_invoice_zero_total_rejected(client: TestClient, db, seeded_fee_structures, revenue_client):
    calculation_id = client.post("/v1/fees/calculate", json=calculation_body()).json()["calculation_id"]
    calculation = db.query(FeeCalculation).filter(FeeCalculation.id == uuid.UUID(calculation_id)).one()
    calculation.total_fee = Decimal("0.00")
    db.commit()

    response = client.post("/v1/invoices", json={"calculation_id": calculation_id})

    assert response.status_code == 422
    assert revenue_client.events == []


def test_partial_then_full_payment(client: TestClient, seeded_fee_structures, revenue_client):
    invoice = create_invoice_for(client)
    url = f"/v1/invoices/{invoice['invoice_id']}/payments"

    partial = client.post(url, json={"amount": "5000.00", "payment_method": "bank transfer"})
    assert partial.status_code == 200
    assert partial.json()["status"] == "partial"
    assert Decimal(partial.json()["balance_due"]) == Decimal("13500")
    assert partial.json()["paid_at"] is None

    paid = client.post(url, json={"amount": "13500.00", "payment_reference": "BSP-778812"})
    assert paid.status_code == 200
    data = paid.json()
    assert data["status"] == "paid"
    assert Decimal(data["amount_paid"]) == Decimal("18500")
    assert Decimal(data["balance_due"]) == 0
    assert data["payment_method"] == "bank transfer"
    assert data["payment_reference"] == "BSP-778812"
    assert data["paid_at"]

    assert [e["event"] for e in revenue_client.events] == ["INVOICE_ISSUED", "PAYMENT_RECORDED", "PAYMENT_RECORDED"]
    assert revenue_client.events[-1]["status"] == "paid"

    fetched = client.get(f"/v1/invoices/{invoice['invoice_id']}").json()
    assert fetched["status"] == "paid"


def test_overpayment_rejected(client: TestClient, seeded_fee_structures):
    invoice = create_invoice_for(client)

    response = client.post(f"/v1/invoices/{invoice['invoice_id']}/payments", json={"amount": "18500.01"})

    assert response.status_code == 409
    assert client.get(f"/v1/invoices/{invoice['invoice_id']}").json()["status"] == "pending"


def test_payment_amount_must_be_positive(client: TestClient, seeded_fee_structures):
    invoice = create_invoice_for(client)

    response = client.post(f"/v1/invoices/{invoice['invoice_id']}/payments", json={"amount": "0"})

    assert response.status_code == 422


def test_payment_on_settled_invoice_rejected(client: TestClient, seeded_fee_structures):
    invoice = create_invoice_for(client)
    url = f"/v1/invoices/{invoice['invoice_id']}/payments"

    assert client.post(url, json={"amount": "18500.00"}).status_code == 200
    assert client.post(url, json={"amount": "1.00"}).status_code == 409


def test_waive_invoice(client: TestClient, seeded_fee_structures):
    invoice = create_invoice_for(client)
    client.post(f"/v1/invoices/{invoice['invoice_id']}/payments", json={"amount": "500.00"})

    response = client.post(f"/v1/invoices/{invoice['invoice_id']}/waiver")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "waived"
    assert Decimal(data["amount_paid"]) == Decimal("500")
    assert Decimal(data["balance_due"]) == 0

    again = client.post(f"/v1/invoices/{invoice['invoice_id']}/payments", json={"amount": "1.00"})
    assert again.status_code == 409
    assert client.post(f"/v1/invoices/{invoice['invoice_id']}/waiver").status_code == 409


def test_payment_unknown_invoice(client: TestClient):
    response = client.post(f"/v1/invoices/{uuid.uuid4()}/payments", json={"amount": "10.00"})
    assert response.status_code == 404
