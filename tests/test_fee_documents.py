import io

import pytest
from docx import Document

from lemonlaw.generators.fee_documents import FeeDocumentGenerator, is_billable
from lemonlaw.services.fee_report import format_comparison
from lemonlaw.services.laffey_service import calculate_comparison


CASE = {
    "case_number": "23STCV01234",
    "client_name": "Maria Lopez",
    "defendant": "Acme Motors, Inc.",
    "county": "Orange",
    "vehicle_year": 2022,
    "vehicle_make": "Acme",
    "vehicle_model": "Roadster",
}

BILLING = [
    {"date": "2024-01-20", "attorney": "A", "description": "Draft complaint", "hours": 10,
     "rate": 500, "amount": 5000, "type": "Billable"},
    {"date": "2024-02-03", "attorney": "A", "description": "Review discovery", "hours": 5,
     "rate": 600, "amount": 3000, "type": "Billable"},
    {"date": "2024-02-04", "attorney": "A", "description": "Courtesy call", "hours": 0.5,
     "rate": 600, "amount": 300, "type": "Non-billable"},
]

COSTS = [
    {"date": "2024-01-21", "vendor": "Superior Court", "description": "Complaint filing fee",
     "category": "Filing", "amount": 435},
]

ATTORNEY = {
    "name": "Pat Counsel",
    "bar_number": "123456",
    "firm_name": "Counsel Law Group",
    "address": ["100 Main St", "Los Angeles, CA 90012"],
    "phone": "(213) 555-0100",
    "email": "pat@example.com",
}


@pytest.fixture
def generator():
    return FeeDocumentGenerator()


@pytest.fixture
def report(blended_entries, schedule):
    return format_comparison(calculate_comparison(blended_entries, schedule))


def _text(doc):
    return "\n".join(p.text for p in doc.paragraphs)


def _table_rows(table):
    return [[cell.text for cell in row.cells] for row in table.rows]


def test_laffey_exhibit(generator, report):
    doc = generator.build("laffey_exhibit", CASE, report=report)
    text = _text(doc)

    assert "EXHIBIT C" in text
    assert "LAFFEY MATRIX RATE COMPARISON" in text
    assert report.conclusion in text

    rows = _table_rows(doc.tables[0])
    assert rows[0] == report.headers
    assert rows[-1] == ["TOTAL", "", "", "", "$8,000.00", "$8,775.00"]


def test_laffey_exhibit_requires_report(generator):
    with pytest.raises(ValueError):
        generator.build("laffey_exhibit", CASE)


def test_invalid_kind(generator):
    with pytest.raises(ValueError):
        generator.build("brief", CASE)


def test_motion(generator, report):
    doc = generator.build("motion", CASE, BILLING, COSTS, report=report, attorney_info=ATTORNEY)
    text = _text(doc)

    assert "State Bar No. 123456" in text
    assert "FOR THE COUNTY OF ORANGE" in text
    assert "MARIA LOPEZ," in doc.tables[0].rows[0].cells[0].text
    assert "Case No.: 23STCV01234" in doc.tables[0].rows[0].cells[1].text
    assert "2022 Acme Roadster" in text
    # non-billable time is excluded from the requested fees
    assert "15.0 hours" in text
    assert "$8,000.00" in text
    assert "costs of $435.00" in text
    assert "Exhibit C (Laffey Matrix Comparison)" in text
    assert "III. THE RATES CHARGED ARE AT OR BELOW MARKET RATES" in text


def test_motion_without_comparison(generator):
    doc = generator.build("motion", CASE, BILLING, COSTS)
    text = _text(doc)
    assert "LAFFEY" not in text.upper()
    assert "SUPERIOR COURT OF THE STATE OF CALIFORNIA" in text


def test_billing_summary(generator):
    doc = generator.build("billing_summary", CASE, BILLING, COSTS)
    assert "EXHIBIT B" in _text(doc)

    billing_rows = _table_rows(doc.tables[0])
    assert billing_rows[1][:2] == ["01/20/2024", "A"]
    assert billing_rows[3][2] == "Courtesy call (no charge)"
    assert billing_rows[-1] == ["", "TOTAL", "", "15.0", "", "$8,000.00"]

    cost_rows = _table_rows(doc.tables[1])
    assert cost_rows[1] == ["01/21/2024", "Superior Court", "Complaint filing fee", "Filing", "$435.00"]


def test_full_package_contains_all_exhibits(generator, report):
    doc = generator.build("full_package", CASE, BILLING, COSTS, report=report, attorney_info=ATTORNEY)
    text = _text(doc)
    assert text.index("MEMORANDUM OF POINTS AND AUTHORITIES") < text.index("EXHIBIT B") < text.index("EXHIBIT C")


def test_render_returns_docx_bytes(generator, report):
    content = generator.render("laffey_exhibit", CASE, report=report)
    assert content[:2] == b"PK"
    assert "EXHIBIT C" in _text(Document(io.BytesIO(content)))


def test_filename_for():
    assert FeeDocumentGenerator.filename_for("full_package", "Maria Lopez") == "Fee_Motion_Package_Maria_Lopez.docx"
    assert FeeDocumentGenerator.filename_for("laffey_exhibit", "O'Neil & Sons") == \
        "Exhibit_C_Laffey_Comparison_ONeil__Sons.docx"


def test_is_billable():
    assert is_billable({"type": "Billable"})
    assert not is_billable({"type": "Non-billable"})
    assert is_billable({})


REPAIRS = [
    {"ro_number": "88400", "dealership": "Acme Motors of Irvine", "date_in": "2023-06-10",
     "date_out": "2023-06-28", "mileage_in": 14210, "days_down": 18, "category": "Engine",
     "customer_concern": "Engine stalls at idle", "work_performed": "Replaced throttle body",
     "parts_replaced": "Throttle body", "resolved": "No"},
    {"ro_number": "88123", "dealership": "Acme Motors of Irvine", "date_in": "2023-04-03",
     "date_out": "2023-04-17", "mileage_in": 12400, "days_down": 14, "category": "Engine",
     "customer_concern": "Engine stalls at idle", "work_performed": "", "resolved": "Partial"},
]


def test_repair_summary_exhibit(generator):
    doc = generator.build("repair_summary", dict(CASE, vin="1ACME000000000001"), repair_orders=REPAIRS)
    text = _text(doc)

    assert "EXHIBIT A" in text
    assert "CHRONOLOGICAL REPAIR HISTORY" in text
    assert "MARIA LOPEZ v. ACME MOTORS, INC." in text
    assert "Case No. 23STCV01234" in text
    assert "cumulative 32 days" in text

    vehicle_rows = _table_rows(doc.tables[0])
    assert vehicle_rows[1] == ["Year/Make/Model", "2022 Acme Roadster"]
    assert vehicle_rows[2] == ["VIN", "1ACME000000000001"]

    summary_rows = _table_rows(doc.tables[1])
    assert summary_rows[1] == ["Total Repair Attempts", "2", ""]
    assert summary_rows[2] == ["Total Days Out of Service", "32", "EXCEEDS 30-DAY PRESUMPTION"]
    assert summary_rows[3] == ["Average Days Per Visit", "16.0", ""]

    visit_rows = _table_rows(doc.tables[2])
    assert visit_rows[0] == ["Visit", "Date In", "Date Out", "Days", "Mileage", "Category"]
    # chronological, not input order
    assert visit_rows[1] == ["1", "04/03/2023", "04/17/2023", "14", "12,400", "Engine"]
    assert visit_rows[-1] == ["TOTAL", "", "", "32", "", ""]

    assert "REPAIR VISIT 1 OF 2" in text
    assert "Work Performed: Not documented" in text
    assert "Parts Replaced: Throttle body" in text
    detail_rows = _table_rows(doc.tables[3])
    assert ["RO Number", "88123"] in detail_rows
    assert ["Issue Resolved?", "Partial"] in detail_rows


def test_repair_summary_requires_repairs(generator):
    with pytest.raises(ValueError):
        generator.build("repair_summary", CASE)


def test_repair_summary_under_presumption(generator):
    repairs = [dict(REPAIRS[1], days_down=5)]
    doc = generator.build("repair_summary", CASE, repair_orders=repairs)
    assert "rebuttable presumption" not in _text(doc)
    assert _table_rows(doc.tables[1])[2] == ["Total Days Out of Service", "5", ""]


def test_motion_statement_of_facts(generator, report):
    case = dict(CASE, purchase_date="2022-03-15", purchase_price=48500)
    doc = generator.build("motion", case, BILLING, COSTS, report=report, repair_orders=REPAIRS)
    text = _text(doc)

    assert "II. STATEMENT OF FACTS" in text
    assert "On or about March 15, 2022, Plaintiff purchased a new 2022 Acme Roadster" in text
    assert "for $48,500.00" in text
    assert "on 2 separate occasions" in text
    assert "Despite Defendant's 2 repair attempts, spanning a total of 32 days out of service" in text
    # repeated concerns are listed once
    assert [p.text for p in doc.paragraphs].count("Engine stalls at idle") == 1
    assert "exceed the 30-day presumption threshold" in text
    assert "IV. THE RATES CHARGED ARE AT OR BELOW MARKET RATES" in text
    assert "VI. CONCLUSION" in text
    assert "Exhibit A (Chronological Repair History), Exhibit B" in text


def test_motion_without_repairs_has_no_statement_of_facts(generator, report):
    text = _text(generator.build("motion", CASE, BILLING, COSTS, report=report))
    assert "STATEMENT OF FACTS" not in text
    assert "Exhibit A" not in text


def test_full_package_with_repairs(generator, report):
    doc = generator.build("full_package", CASE, BILLING, COSTS, report=report, repair_orders=REPAIRS)
    text = _text(doc)
    assert text.index("MEMORANDUM") < text.index("EXHIBIT A") < text.index("EXHIBIT B") < text.index("EXHIBIT C")
