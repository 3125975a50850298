import io
import json
from types import SimpleNamespace

import pytest
from docx import Document
from fastapi.testclient import TestClient

from lemonlaw.main import create_app
from lemonlaw.services.ai_service import AIService


LAFFEY_PERIOD = {
    "period_start": "2023-06-01",
    "period_end": "2024-05-31",
    "adjustment_factor": 1.0,
    "paralegal_rate": 225,
    "tier1to3_rate": 413,
    "tier4to7_rate": 508,
    "tier8to10_rate": 585,
    "tier11to19_rate": 661,
    "tier20_plus_rate": 798,
}


@pytest.fixture
def client(tmp_path, export_dir):
    app = create_app(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def case_id(client):
    response = client.post("/api/cases/", json={
        "case_number": "23STCV01234",
        "client_name": "Maria Lopez",
        "defendant": "Acme Motors, Inc.",
        "county": "Orange",
        "vehicle_year": 2022,
        "vehicle_make": "Acme",
        "vehicle_model": "Roadster",
        "purchase_date": "2022-03-15",
        "purchase_price": 48500,
    })
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def billed_case(client, case_id):
    client.post("/api/attorneys", json={"name": "Jane Doe", "years_out_of_law_school": 9})
    client.post("/api/attorneys", json={"name": "Pat Para", "years_out_of_law_school": 2, "is_paralegal": True})
    response = client.post("/api/billing", json={
        "case_id": case_id,
        "billing_entries": [
            {"date": "2024-01-20", "attorney": "Jane Doe", "hours": 10, "rate": 500,
             "description": "Draft complaint"},
            {"date": "2024-02-03", "attorney": "Jane Doe", "hours": 5, "rate": 600,
             "description": "Review discovery"},
            {"date": "2024-02-04", "attorney": "Jane Doe", "hours": 1, "rate": 600,
             "description": "Courtesy call", "type": "Non-billable"},
            {"date": "2024-02-05", "attorney": "Pat Para", "hours": 2, "rate": 200,
             "description": "Organize exhibits"},
        ],
    })
    assert response.status_code == 201
    client.post("/api/costs", json={
        "case_id": case_id,
        "costs": [{"date": "2024-01-21", "vendor": "Superior Court", "description": "Filing fee",
                   "category": "Filing", "amount": 435}],
    })
    return case_id


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["components"]["database"] == "connected"


# ------------------------------------------------------------
# Ad-hoc comparison
# ------------------------------------------------------------

def test_comparison_endpoint(client):
    response = client.post("/api/fees/comparison", json={
        "entries": [
            {"attorney": "A", "hours": 10, "rate": 500, "years_experience": 9},
            {"attorney": "A", "hours": 5, "rate": 600, "years_experience": 9},
        ],
        "schedule": {"tier8to10_rate": 585},
    })
    assert response.status_code == 200
    body = response.json()

    assert body["comparison"]["total_billed"] == pytest.approx(8000)
    assert body["comparison"]["total_benchmark"] == pytest.approx(8775)
    assert body["comparison"]["difference"] == pytest.approx(775)
    assert body["comparison"]["is_at_or_below_benchmark"] is True
    assert body["comparison"]["by_attorney"][0]["tier"] == "senior"
    assert body["report"]["rows"][-1] == ["TOTAL", "", "", "", "$8,000.00", "$8,775.00"]
    assert "reasonable and conservative" in body["report"]["sentences"][-1]


def test_comparison_empty_entries(client):
    response = client.post("/api/fees/comparison", json={"entries": [], "schedule": {}})
    assert response.status_code == 200
    assert response.json()["comparison"]["by_attorney"] == []


def test_comparison_negative_hours_is_422(client):
    response = client.post("/api/fees/comparison", json={
        "entries": [{"attorney": "A", "hours": -1, "rate": 500}],
        "schedule": {"tier4to7_rate": 508},
    })
    assert response.status_code == 422
    assert response.json()["detail"]["attorney"] == "A"
    assert response.json()["detail"]["field"] == "hours"


def test_comparison_missing_tier_rate_is_422(client):
    response = client.post("/api/fees/comparison", json={
        "entries": [{"attorney": "A", "hours": 1, "rate": 500, "years_experience": 15}],
        "schedule": {"tier1to3_rate": 413},
    })
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "tier11to19_rate"


def test_comparison_default_years_override(client):
    response = client.post("/api/fees/comparison", json={
        "entries": [{"attorney": "A", "hours": 1, "rate": 500}],
        "schedule": {"tier20_plus_rate": 798},
        "default_years_experience": 30,
    })
    assert response.json()["comparison"]["by_attorney"][0]["tier"] == "veteran"


# ------------------------------------------------------------
# Cases, billing, costs
# ------------------------------------------------------------

def test_case_crud(client, case_id):
    duplicate = client.post("/api/cases/", json={
        "case_number": "23STCV01234", "client_name": "Someone", "defendant": "Else",
    })
    assert duplicate.status_code == 409

    listing = client.get("/api/cases/", params={"search": "Lopez"}).json()
    assert listing["total"] == 1
    assert listing["items"][0]["client_name"] == "Maria Lopez"

    updated = client.put(f"/api/cases/{case_id}", json={"status": "Settled"})
    assert updated.json()["status"] == "Settled"

    assert client.delete(f"/api/cases/{case_id}").status_code == 200
    assert client.get(f"/api/cases/{case_id}").status_code == 404


def test_billing_amounts_and_case_totals(client, billed_case):
    entries = client.get("/api/billing", params={"case_id": billed_case}).json()
    assert len(entries) == 4
    assert {e["amount"] for e in entries} == {5000.0, 3000.0, 600.0, 400.0}

    case = client.get(f"/api/cases/{billed_case}").json()
    assert case["billing_entry_count"] == 3
    assert case["total_hours"] == pytest.approx(17)
    assert case["total_fees"] == pytest.approx(8400)
    assert case["total_costs"] == pytest.approx(435)


def test_billing_for_unknown_case_is_404(client):
    response = client.post("/api/billing", json={
        "case_id": 999,
        "billing_entries": [{"attorney": "A", "hours": 1, "rate": 100}],
    })
    assert response.status_code == 404


def test_delete_case_removes_billing(client, billed_case):
    client.delete(f"/api/cases/{billed_case}")
    assert client.get("/api/billing", params={"case_id": billed_case}).json() == []
    assert client.get("/api/costs", params={"case_id": billed_case}).json() == []


def test_duplicate_attorney_is_409(client):
    client.post("/api/attorneys", json={"name": "Jane Doe", "years_out_of_law_school": 9})
    response = client.post("/api/attorneys", json={"name": "Jane Doe", "years_out_of_law_school": 3})
    assert response.status_code == 409


def test_laffey_period_rejects_reversed_dates(client):
    period = dict(LAFFEY_PERIOD, period_end="2023-01-01")
    assert client.post("/api/laffey-matrix", json=period).status_code == 422


# ------------------------------------------------------------
# Stored-case comparison and documents
# ------------------------------------------------------------

def test_case_comparison_needs_period(client, billed_case):
    assert client.get(f"/api/fees/cases/{billed_case}/comparison").status_code == 404


def test_case_comparison_uses_roster_and_skips_non_billable(client, billed_case):
    period_id = client.post("/api/laffey-matrix", json=LAFFEY_PERIOD).json()["id"]

    body = client.get(f"/api/fees/cases/{billed_case}/comparison").json()
    assert body["laffey_period_id"] == period_id

    by_attorney = {a["attorney"]: a for a in body["comparison"]["by_attorney"]}
    assert by_attorney["Jane Doe"]["tier"] == "senior"
    assert by_attorney["Jane Doe"]["hours"] == pytest.approx(15)
    assert by_attorney["Jane Doe"]["billed_amount"] == pytest.approx(8000)
    assert by_attorney["Pat Para"]["tier"] == "paralegal"
    assert by_attorney["Pat Para"]["benchmark_amount"] == pytest.approx(450)
    assert body["comparison"]["total_billed"] == pytest.approx(8400)


def test_unknown_period_is_404(client, billed_case):
    response = client.get(f"/api/fees/cases/{billed_case}/comparison", params={"laffey_period_id": 42})
    assert response.status_code == 404


def test_generate_laffey_exhibit_requires_period(client, billed_case):
    response = client.post("/api/generate", json={"case_id": billed_case, "type": "laffey_exhibit"})
    assert response.status_code == 400


def test_generate_full_package(client, billed_case):
    client.post("/api/laffey-matrix", json=LAFFEY_PERIOD)
    response = client.post("/api/generate", json={
        "case_id": billed_case,
        "type": "full_package",
        "attorney_info": {"name": "Pat Counsel", "bar_number": "123456", "firm_name": "Counsel Law Group"},
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )
    assert "Fee_Motion_Package_Maria_Lopez.docx" in response.headers["content-disposition"]

    text = "\n".join(p.text for p in Document(io.BytesIO(response.content)).paragraphs)
    assert "EXHIBIT B" in text
    assert "EXHIBIT C" in text
    assert "State Bar No. 123456" in text


def test_generate_for_unknown_case_is_404(client):
    assert client.post("/api/generate", json={"case_id": 999, "type": "motion"}).status_code == 404


# ------------------------------------------------------------
# Extraction
# ------------------------------------------------------------

class FakeCompletions:
    def __init__(self, content):
        self.content = content

    async def create(self, **kwargs):
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_extract_billing(client, monkeypatch):
    reply = json.dumps({"entries": [{"attorney": "Jane Doe", "hours": 2.5, "rate": 650}]})
    fake = AIService(client=SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(reply))))
    monkeypatch.setattr("lemonlaw.api.documents.ai_service", fake)

    response = client.post(
        "/api/extract",
        files={"file": ("statement.txt", b"Jane Doe 2.5 hours at $650 rate", "text/plain")},
        data={"type": "billing"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "billing"
    assert body["data"][0]["attorney"] == "Jane Doe"
    assert body["data"][0]["hours"] == 2.5


def test_extract_without_ai_is_503(client, monkeypatch):
    unavailable = AIService()
    unavailable.client = None
    monkeypatch.setattr("lemonlaw.api.documents.ai_service", unavailable)

    response = client.post("/api/extract", files={"file": ("statement.txt", b"hours rate", "text/plain")})
    assert response.status_code == 503


def test_extract_rejects_unsupported_and_empty_files(client):
    unsupported = client.post("/api/extract", files={"file": ("photo.png", b"\x89PNG", "image/png")})
    assert unsupported.status_code == 400

    empty = client.post("/api/extract", files={"file": ("blank.txt", b"   ", "text/plain")})
    assert empty.status_code == 422


def test_extract_rejects_unknown_type(client):
    response = client.post(
        "/api/extract",
        files={"file": ("statement.txt", b"hours rate", "text/plain")},
        data={"type": "invoices"},
    )
    assert response.status_code == 400


# ------------------------------------------------------------
# Repair orders
# ------------------------------------------------------------

REPAIR_ORDERS = [
    {"ro_number": "88400", "dealership": "Acme Motors of Irvine", "date_in": "2023-06-10",
     "date_out": "2023-06-28", "mileage_in": 14210, "category": "Engine",
     "customer_concern": "Engine stalls at idle", "work_performed": "Replaced throttle body"},
    {"ro_number": "88123", "dealership": "Acme Motors of Irvine", "date_in": "2023-04-03",
     "date_out": "2023-04-17", "mileage_in": 12400, "days_down": 15, "category": "Engine",
     "customer_concern": "Engine stalls at idle", "resolved": "Partial"},
]


@pytest.fixture
def repaired_case(client, case_id):
    response = client.post("/api/repair-orders", json={"case_id": case_id, "repair_orders": REPAIR_ORDERS})
    assert response.status_code == 201
    return case_id


def test_repair_orders_list_chronologically(client, repaired_case):
    repairs = client.get("/api/repair-orders", params={"case_id": repaired_case}).json()

    assert [r["ro_number"] for r in repairs] == ["88123", "88400"]
    # explicit days_down is kept, missing days_down comes from the dates
    assert [r["days_down"] for r in repairs] == [15, 18]
    assert repairs[0]["resolved"] == "Partial"
    assert repairs[1]["resolved"] == "No"

    case = client.get(f"/api/cases/{repaired_case}").json()
    assert case["repair_order_count"] == 2
    assert case["total_days_down"] == 33


def test_repair_order_bulk_create_validation(client, case_id):
    empty = client.post("/api/repair-orders", json={"case_id": case_id, "repair_orders": []})
    assert empty.status_code == 422

    reversed_dates = client.post("/api/repair-orders", json={
        "case_id": case_id,
        "repair_orders": [{"date_in": "2023-05-10", "date_out": "2023-05-01"}],
    })
    assert reversed_dates.status_code == 422

    bad_category = client.post("/api/repair-orders", json={
        "case_id": case_id,
        "repair_orders": [{"category": "Wipers"}],
    })
    assert bad_category.status_code == 422

    unknown_case = client.post("/api/repair-orders", json={"case_id": 999, "repair_orders": REPAIR_ORDERS})
    assert unknown_case.status_code == 404


def test_repair_order_get_update_delete(client, repaired_case):
    repair_id = client.get("/api/repair-orders", params={"case_id": repaired_case}).json()[1]["id"]

    assert client.get(f"/api/repair-orders/{repair_id}").json()["ro_number"] == "88400"

    updated = client.put(f"/api/repair-orders/{repair_id}", json={
        "date_out": "2023-06-20", "resolved": "Yes",
    }).json()
    assert updated["days_down"] == 10
    assert updated["resolved"] == "Yes"
    assert updated["customer_concern"] == "Engine stalls at idle"

    kept = client.put(f"/api/repair-orders/{repair_id}", json={"days_down": 12}).json()
    assert kept["days_down"] == 12

    reversed_dates = client.put(f"/api/repair-orders/{repair_id}", json={"date_out": "2023-01-01"})
    assert reversed_dates.status_code == 422

    assert client.delete(f"/api/repair-orders/{repair_id}").status_code == 200
    assert client.get(f"/api/repair-orders/{repair_id}").status_code == 404
    assert client.delete(f"/api/repair-orders/{repair_id}").status_code == 404


def test_delete_case_removes_repair_orders(client, repaired_case):
    client.delete(f"/api/cases/{repaired_case}")
    assert client.get("/api/repair-orders", params={"case_id": repaired_case}).json() == []


def test_generate_repair_summary(client, repaired_case):
    response = client.post("/api/generate", json={"case_id": repaired_case, "type": "repair_summary"})

    assert response.status_code == 200
    assert "Exhibit_A_Repair_Summary_Maria_Lopez.docx" in response.headers["content-disposition"]
    text = "\n".join(p.text for p in Document(io.BytesIO(response.content)).paragraphs)
    assert "CHRONOLOGICAL REPAIR HISTORY" in text
    assert "cumulative 33 days" in text


def test_generate_repair_summary_requires_repairs(client, case_id):
    response = client.post("/api/generate", json={"case_id": case_id, "type": "repair_summary"})
    assert response.status_code == 400


def test_full_package_includes_repair_history(client, billed_case):
    client.post("/api/repair-orders", json={"case_id": billed_case, "repair_orders": REPAIR_ORDERS})
    response = client.post("/api/generate", json={"case_id": billed_case, "type": "full_package"})

    text = "\n".join(p.text for p in Document(io.BytesIO(response.content)).paragraphs)
    assert "STATEMENT OF FACTS" in text
    assert text.index("EXHIBIT A") < text.index("EXHIBIT B")


def test_extract_repair_orders_detected_from_text(client, monkeypatch):
    reply = json.dumps({"repair_orders": [
        {"ro_number": "88123", "date_in": "2023-04-03", "date_out": "2023-04-17",
         "customer_concern": "Engine stalls at idle", "category": "Engine"},
    ]})
    fake = AIService(client=SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(reply))))
    monkeypatch.setattr("lemonlaw.api.documents.ai_service", fake)

    response = client.post(
        "/api/extract",
        files={"file": ("ro.txt", b"Repair order 88123 at Acme dealership. Customer concern: stalls.", "text/plain")},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "repair_orders"
    assert body["data"][0]["days_down"] == 14
    assert body["data"][0]["source_file"] == "ro.txt"


# ------------------------------------------------------------
# Amounts and app wiring
# ------------------------------------------------------------

def test_stored_amounts_match_comparison_totals(client, case_id):
    client.post("/api/attorneys", json={"name": "Jane Doe", "years_out_of_law_school": 9})
    client.post("/api/laffey-matrix", json=LAFFEY_PERIOD)
    client.post("/api/billing", json={
        "case_id": case_id,
        "billing_entries": [{"attorney": "Jane Doe", "hours": 0.1, "rate": 333.33} for _ in range(3)],
    })

    entries = client.get("/api/billing", params={"case_id": case_id}).json()
    assert all(e["amount"] == pytest.approx(33.333) for e in entries)

    case = client.get(f"/api/cases/{case_id}").json()
    comparison = client.get(f"/api/fees/cases/{case_id}/comparison").json()
    assert case["total_fees"] == pytest.approx(comparison["comparison"]["total_billed"])
    assert comparison["report"]["rows"][-1][4] == "$100.00"


def test_logging_is_configured_by_lifespan_not_import(tmp_path, export_dir, monkeypatch):
    calls = []
    monkeypatch.setattr("lemonlaw.main.configure_logging", lambda: calls.append(True))

    app = create_app(f"sqlite+aiosqlite:///{tmp_path / 'logging.db'}")
    assert calls == []

    with TestClient(app):
        assert calls == [True]
