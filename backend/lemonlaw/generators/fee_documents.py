"""
Lemon Law Fee Suite
Fee Motion and Exhibit Generator

Builds court-formatted Word documents (motion for attorney's fees, repair
history, billing itemization, Laffey Matrix comparison) with python-docx.
"""
import io
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt

from lemonlaw.core.config import settings
from lemonlaw.services.fee_report import FeeComparisonReport, format_currency, format_hours
from lemonlaw.services.repair_history import (
    PRESUMPTION_DAYS, days_down_for, sort_repairs, summarize_repairs
)


DOCUMENT_KINDS = ("motion", "repair_summary", "billing_summary", "laffey_exhibit", "full_package")

FILENAME_PREFIXES = {
    "motion": "Motion_for_Fees",
    "repair_summary": "Exhibit_A_Repair_Summary",
    "billing_summary": "Exhibit_B_Billing_Summary",
    "laffey_exhibit": "Exhibit_C_Laffey_Comparison",
    "full_package": "Fee_Motion_Package",
}

BILLING_HEADERS = ["Date", "Timekeeper", "Description", "Hours", "Rate", "Amount"]
COST_HEADERS = ["Date", "Vendor", "Description", "Category", "Amount"]
REPAIR_HEADERS = ["Visit", "Date In", "Date Out", "Days", "Mileage", "Category"]

ROMAN_NUMERALS = ["I", "II", "III", "IV", "V", "VI", "VII", "VIII"]


def _value(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _enum_text(value: Any) -> str:
    return str(getattr(value, "value", value) or "")


def _format_date(value: Any, long: bool = False) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%B %d, %Y") if long else value.strftime("%m/%d/%Y")


def is_billable(entry: Any) -> bool:
    return _enum_text(_value(entry, "type", "Billable")) != "Non-billable"


class FeeDocumentGenerator:
    """
    Court document builder for fee motions.

    Every public build method returns a python-docx Document; ``render``
    serializes to bytes for streaming downloads.
    """

    def __init__(self, font: Optional[str] = None, font_size: Optional[int] = None):
        self.font = font or settings.COURT_FONT
        self.font_size = font_size or settings.COURT_FONT_SIZE

    # ========================================
    # ENTRY POINTS
    # ========================================

    def build(
        self,
        kind: str,
        case: Any,
        billing_entries: Iterable[Any] = (),
        costs: Iterable[Any] = (),
        report: Optional[FeeComparisonReport] = None,
        attorney_info: Optional[Any] = None,
        repair_orders: Iterable[Any] = (),
    ) -> Document:
        """Build one of: motion, repair_summary, billing_summary, laffey_exhibit, full_package"""
        kind = _enum_text(kind)
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"Invalid document type: {kind}")

        repair_orders = sort_repairs(repair_orders)
        billing_entries = list(billing_entries)
        costs = list(costs)
        doc = self._new_document()

        if kind == "motion":
            self._add_motion(doc, case, billing_entries, costs, report, attorney_info, repair_orders)
        elif kind == "repair_summary":
            self._add_repair_exhibit(doc, case, repair_orders)
        elif kind == "billing_summary":
            self._add_billing_exhibit(doc, billing_entries, costs)
        elif kind == "laffey_exhibit":
            if report is None:
                raise ValueError("A Laffey Matrix comparison is required for the Laffey exhibit")
            self._add_laffey_exhibit(doc, report)
        else:
            self._add_motion(doc, case, billing_entries, costs, report, attorney_info, repair_orders)
            if repair_orders:
                doc.add_page_break()
                self._add_repair_exhibit(doc, case, repair_orders)
            doc.add_page_break()
            self._add_billing_exhibit(doc, billing_entries, costs)
            if report is not None:
                doc.add_page_break()
                self._add_laffey_exhibit(doc, report)

        return doc

    def render(self, kind: str, case: Any, **kwargs) -> bytes:
        buffer = io.BytesIO()
        self.build(kind, case, **kwargs).save(buffer)
        return buffer.getvalue()

    @staticmethod
    def filename_for(kind: str, client_name: str) -> str:
        safe_name = re.sub(r"\s+", "_", (client_name or "Client").strip())
        safe_name = re.sub(r"[^A-Za-z0-9_.-]", "", safe_name)
        return f"{FILENAME_PREFIXES[_enum_text(kind)]}_{safe_name}.docx"

    # ========================================
    # DOCUMENT SECTIONS
    # ========================================

    def _add_motion(self, doc, case, billing_entries, costs, report, attorney_info, repair_orders=()):
        if attorney_info is not None:
            self._add_attorney_block(doc, attorney_info, case)

        court_name = _value(case, "court_name") or settings.DEFAULT_COURT_NAME
        county = _value(case, "county") or settings.DEFAULT_COUNTY
        self._heading(doc, court_name.upper())
        self._heading(doc, f"FOR THE COUNTY OF {county.upper()}")
        self._blank(doc)
        self._add_caption(doc, case)

        billable = [e for e in billing_entries if is_billable(e)]
        total_hours = sum(float(_value(e, "hours", 0) or 0) for e in billable)
        total_fees = sum(float(_value(e, "amount", 0) or 0) for e in billable)
        total_costs = sum(float(_value(c, "amount", 0) or 0) for c in costs)
        client = _value(case, "client_name", "Plaintiff")
        vehicle = " ".join(
            str(v) for v in (
                _value(case, "vehicle_year"),
                _value(case, "vehicle_make"),
                _value(case, "vehicle_model"),
            ) if v
        ) or "subject vehicle"

        sections = iter(ROMAN_NUMERALS)

        self._heading(doc, "MEMORANDUM OF POINTS AND AUTHORITIES", underline=True)
        self._heading(doc, f"{next(sections)}. INTRODUCTION")
        self._body(doc, (
            f"Plaintiff {client} prevailed in this action against {_value(case, 'defendant', 'Defendant')} "
            f"arising from the purchase of a defective {vehicle}. As the prevailing buyer, Plaintiff is "
            f"entitled to recover the aggregate amount of costs and expenses, including attorney's fees, "
            f"reasonably incurred in connection with the commencement and prosecution of this action."
        ))

        if repair_orders:
            self._heading(doc, f"{next(sections)}. STATEMENT OF FACTS")
            self._add_statement_of_facts(doc, case, vehicle, repair_orders)

        self._heading(doc, f"{next(sections)}. THE ATTORNEY'S FEES REQUESTED ARE REASONABLE")
        self._body(doc, (
            f"Plaintiff's counsel expended {format_hours(total_hours)} hours litigating this matter, "
            f"for total fees of {format_currency(total_fees)}. The time entries supporting this request "
            f"are itemized in Exhibit B."
        ))

        if report is not None:
            self._heading(doc, f"{next(sections)}. THE RATES CHARGED ARE AT OR BELOW MARKET RATES")
            for sentence in report.sentences[:-1]:
                self._body(doc, sentence)
            self._add_table(doc, report.headers, report.rows, bold_last_row=True)
            self._blank(doc)
            self._body(doc, report.conclusion, bold=report.is_at_or_below_benchmark)

        self._heading(doc, f"{next(sections)}. COSTS AND EXPENSES")
        self._body(doc, f"Plaintiff incurred costs and expenses totaling {format_currency(total_costs)}.")

        self._heading(doc, f"{next(sections)}. CONCLUSION")
        exhibit_list = []
        if repair_orders:
            exhibit_list.append("Exhibit A (Chronological Repair History)")
        exhibit_list.append("Exhibit B (Attorney Fee Itemization)")
        if report is not None:
            exhibit_list.append("Exhibit C (Laffey Matrix Comparison)")
        exhibits = exhibit_list[-1]
        if len(exhibit_list) > 1:
            exhibits = f"{', '.join(exhibit_list[:-1])} and {exhibits}"
        self._body(doc, (
            f"Plaintiff respectfully requests an award of attorney's fees of {format_currency(total_fees)} "
            f"and costs of {format_currency(total_costs)}, for a total of "
            f"{format_currency(total_fees + total_costs)}, as supported by {exhibits}."
        ))

        self._add_signature_block(doc, attorney_info)

    def _add_statement_of_facts(self, doc, case, vehicle, repair_orders):
        history = summarize_repairs(repair_orders)

        purchase = f"On or about {_format_date(_value(case, 'purchase_date'), long=True)}, Plaintiff"
        if not _value(case, "purchase_date"):
            purchase = "Plaintiff"
        details = f"a new {vehicle}"
        if _value(case, "vin"):
            details += f", Vehicle Identification Number {_value(case, 'vin')}"
        details += ' (the "Subject Vehicle")'
        if _value(case, "purchase_price"):
            details += f", for {format_currency(float(_value(case, 'purchase_price')))}"
        self._body(doc, (
            f"{purchase} purchased {details}. The Subject Vehicle was accompanied by Defendant's express "
            f"written warranty covering defects in materials and workmanship."
        ))
        self._body(doc, (
            f"During the warranty period, the Subject Vehicle exhibited defects and nonconformities that "
            f"substantially impaired its use, value and safety. Plaintiff presented the Subject Vehicle to "
            f"Defendant's authorized repair facilities on {history.attempts} separate occasions in an "
            f"attempt to have the defects repaired."
        ))

        if history.issues:
            self._body(doc, (
                f"Despite Defendant's {history.attempts} repair attempts, spanning a total of "
                f"{history.total_days_down} days out of service, Defendant and its authorized repair "
                f"facilities were unable to conform the Subject Vehicle to the applicable express "
                f"warranties. The defects included:"
            ))
            for issue in history.issues:
                doc.add_paragraph(issue, style="List Bullet")

        if history.exceeds_presumption:
            self._body(doc, (
                f"The {history.total_days_down} cumulative days the Subject Vehicle was out of service for "
                f"repair exceed the {PRESUMPTION_DAYS}-day presumption threshold established by Civil Code "
                f"section 1793.22. A chronological summary of the repair history is attached hereto as "
                f"Exhibit A and incorporated by reference."
            ))

    def _add_repair_exhibit(self, doc, case, repair_orders):
        if not repair_orders:
            raise ValueError("At least one repair order is required for the repair history exhibit")
        history = summarize_repairs(repair_orders)

        self._add_exhibit_header(doc, "A", "CHRONOLOGICAL REPAIR HISTORY")
        self._heading(doc, (
            f"{(_value(case, 'client_name') or '').upper()} v. {(_value(case, 'defendant') or '').upper()}"
        ))
        doc.add_paragraph(
            f"Case No. {_value(case, 'case_number') or '[CASE NUMBER]'}"
        ).alignment = WD_ALIGN_PARAGRAPH.CENTER
        self._blank(doc)

        vehicle = " ".join(
            str(v) for v in (
                _value(case, "vehicle_year"),
                _value(case, "vehicle_make"),
                _value(case, "vehicle_model"),
            ) if v
        )
        price = _value(case, "purchase_price")
        self._heading(doc, "VEHICLE INFORMATION", underline=True)
        self._add_table(doc, ["Item", "Details"], [
            ["Year/Make/Model", vehicle],
            ["VIN", _value(case, "vin") or ""],
            ["Purchase Date", _format_date(_value(case, "purchase_date"), long=True)],
            ["Purchase Price", format_currency(float(price)) if price else ""],
        ])
        self._blank(doc)

        self._heading(doc, "SUMMARY STATISTICS", underline=True)
        self._add_table(doc, ["Metric", "Value", "Significance"], [
            [
                "Total Repair Attempts",
                str(history.attempts),
                "Exceeds reasonable repair threshold" if history.exceeds_attempt_threshold else "",
            ],
            [
                "Total Days Out of Service",
                str(history.total_days_down),
                f"EXCEEDS {PRESUMPTION_DAYS}-DAY PRESUMPTION" if history.exceeds_presumption else "",
            ],
            ["Average Days Per Visit", f"{history.average_days:.1f}", ""],
        ])
        self._blank(doc)

        if history.exceeds_presumption:
            self._body(doc, (
                f"The Subject Vehicle was out of service for a cumulative {history.total_days_down} days, "
                f"triggering the rebuttable presumption under Civil Code § 1793.22 that the vehicle cannot "
                f"be conformed to warranty."
            ), bold=True)

        self._heading(doc, "REPAIR VISITS", underline=True)
        rows = [
            [
                str(index),
                _format_date(_value(r, "date_in")),
                _format_date(_value(r, "date_out")),
                str(days_down_for(r)),
                f"{_value(r, 'mileage_in'):,}" if _value(r, "mileage_in") is not None else "",
                _enum_text(_value(r, "category", "Other")),
            ]
            for index, r in enumerate(repair_orders, start=1)
        ]
        rows.append(["TOTAL", "", "", str(history.total_days_down), "", ""])
        self._add_table(doc, REPAIR_HEADERS, rows, bold_last_row=True)

        for index, repair in enumerate(repair_orders, start=1):
            self._blank(doc)
            self._heading(doc, f"REPAIR VISIT {index} OF {history.attempts}")
            mileage = _value(repair, "mileage_in")
            dates = _format_date(_value(repair, "date_in"))
            if _value(repair, "date_out"):
                dates = f"{dates} to {_format_date(_value(repair, 'date_out'))}"
            self._add_table(doc, ["Field", "Value"], [
                ["Date", dates],
                ["Days Out of Service", f"{days_down_for(repair)} days"],
                ["Odometer", f"{mileage:,} miles" if mileage is not None else ""],
                ["Dealership", _value(repair, "dealership") or ""],
                ["RO Number", _value(repair, "ro_number") or ""],
                ["Problem Category", _enum_text(_value(repair, "category", "Other"))],
                ["Issue Resolved?", _enum_text(_value(repair, "resolved", "No"))],
            ])
            self._labeled(doc, "Customer Complaint:", _value(repair, "customer_concern") or "Not documented")
            self._labeled(doc, "Work Performed:", _value(repair, "work_performed") or "Not documented")
            if _value(repair, "parts_replaced"):
                self._labeled(doc, "Parts Replaced:", _value(repair, "parts_replaced"))

    def _add_billing_exhibit(self, doc, billing_entries, costs):
        self._add_exhibit_header(doc, "B", "ATTORNEY FEE ITEMIZATION")

        rows: List[List[str]] = []
        total_hours = 0.0
        total_amount = 0.0
        for entry in billing_entries:
            hours = float(_value(entry, "hours", 0) or 0)
            amount = float(_value(entry, "amount", 0) or 0)
            if is_billable(entry):
                total_hours += hours
                total_amount += amount
            description = _value(entry, "description", "") or ""
            if not is_billable(entry):
                description = f"{description} (no charge)".strip()
            rows.append([
                _format_date(_value(entry, "date")),
                _value(entry, "attorney", ""),
                description,
                format_hours(hours),
                format_currency(float(_value(entry, "rate", 0) or 0)),
                format_currency(amount),
            ])
        rows.append(["", "TOTAL", "", format_hours(total_hours), "", format_currency(total_amount)])
        self._add_table(doc, BILLING_HEADERS, rows, bold_last_row=True)

        if costs:
            self._blank(doc)
            self._heading(doc, "COSTS AND EXPENSES", underline=True)
            cost_rows = [
                [
                    _format_date(_value(c, "date")),
                    _value(c, "vendor", "") or "",
                    _value(c, "description", "") or "",
                    _enum_text(_value(c, "category", "Other")),
                    format_currency(float(_value(c, "amount", 0) or 0)),
                ]
                for c in costs
            ]
            total_costs = sum(float(_value(c, "amount", 0) or 0) for c in costs)
            cost_rows.append(["", "", "TOTAL", "", format_currency(total_costs)])
            self._add_table(doc, COST_HEADERS, cost_rows, bold_last_row=True)

    def _add_laffey_exhibit(self, doc, report: FeeComparisonReport):
        self._add_exhibit_header(doc, "C", "LAFFEY MATRIX RATE COMPARISON")
        for sentence in report.sentences[:-1]:
            self._body(doc, sentence)
        self._add_table(doc, report.headers, report.rows, bold_last_row=True)
        self._blank(doc)
        self._body(doc, report.conclusion, bold=report.is_at_or_below_benchmark)

    # ========================================
    # BUILDING BLOCKS
    # ========================================

    def _new_document(self) -> Document:
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = self.font
        style.font.size = Pt(self.font_size)

        for section in doc.sections:
            section.top_margin = Inches(1)
            section.bottom_margin = Inches(1)
            section.left_margin = Inches(1)
            section.right_margin = Inches(1)
            self._add_page_number(section.footer.paragraphs[0])
        return doc

    def _add_page_number(self, paragraph):
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.add_run("- ")
        run = paragraph.add_run()
        begin = OxmlElement("w:fldChar")
        begin.set(qn("w:fldCharType"), "begin")
        instr = OxmlElement("w:instrText")
        instr.set(qn("xml:space"), "preserve")
        instr.text = "PAGE"
        end = OxmlElement("w:fldChar")
        end.set(qn("w:fldCharType"), "end")
        run._r.append(begin)
        run._r.append(instr)
        run._r.append(end)
        paragraph.add_run(" -")

    def _heading(self, doc, text: str, underline: bool = False):
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(text)
        run.bold = True
        run.underline = underline
        return p

    def _body(self, doc, text: str, bold: bool = False):
        p = doc.add_paragraph()
        p.paragraph_format.first_line_indent = Inches(0.5)
        p.paragraph_format.line_spacing = 2.0
        run = p.add_run(text)
        run.bold = bold
        return p

    def _blank(self, doc):
        doc.add_paragraph("")

    def _labeled(self, doc, label: str, text: str):
        p = doc.add_paragraph()
        p.add_run(label).bold = True
        p.add_run(f" {text}")
        return p

    def _add_exhibit_header(self, doc, letter: str, title: str):
        self._heading(doc, f"EXHIBIT {letter}")
        self._heading(doc, title, underline=True)
        self._blank(doc)

    def _add_table(self, doc, headers: List[str], rows: List[List[str]], bold_last_row: bool = False):
        table = doc.add_table(rows=1, cols=len(headers))
        table.style = "Table Grid"
        table.alignment = WD_TABLE_ALIGNMENT.CENTER

        for cell, header in zip(table.rows[0].cells, headers):
            cell.text = ""
            run = cell.paragraphs[0].add_run(header)
            run.bold = True
            cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER

        for index, row in enumerate(rows):
            cells = table.add_row().cells
            bold = bold_last_row and index == len(rows) - 1
            for col, (cell, value) in enumerate(zip(cells, row)):
                text = "" if value is None else str(value)
                cell.text = ""
                run = cell.paragraphs[0].add_run(text)
                run.bold = bold
                if col > 0 and (text.startswith("$") or text.startswith("-$") or re.fullmatch(r"[\d.]+", text)):
                    cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.RIGHT
        return table

    def _add_caption(self, doc, case):
        table = doc.add_table(rows=1, cols=2)
        left, right = table.rows[0].cells
        left.text = ""
        left.paragraphs[0].add_run(f"{(_value(case, 'client_name') or '').upper()},").bold = True
        left.add_paragraph("Plaintiff,")
        left.add_paragraph("v.")
        left.add_paragraph(f"{(_value(case, 'defendant') or '').upper()},").runs[0].bold = True
        left.add_paragraph("Defendant.")

        right.text = ""
        right.paragraphs[0].add_run(f"Case No.: {_value(case, 'case_number') or '[CASE NUMBER]'}")
        title = right.add_paragraph()
        title.add_run(
            "NOTICE OF MOTION AND MOTION FOR ATTORNEY'S FEES, COSTS AND EXPENSES"
        ).bold = True
        self._blank(doc)

    def _add_attorney_block(self, doc, info, case):
        lines = [
            _value(info, "name", ""),
            f"State Bar No. {_value(info, 'bar_number')}" if _value(info, "bar_number") else "",
            _value(info, "firm_name", ""),
            *(_value(info, "address", []) or []),
            f"Telephone: {_value(info, 'phone')}" if _value(info, "phone") else "",
            f"Email: {_value(info, 'email')}" if _value(info, "email") else "",
            "",
            f"Attorneys for Plaintiff {_value(case, 'client_name', '')}",
        ]
        for line in lines:
            p = doc.add_paragraph(line)
            p.paragraph_format.space_after = Pt(0)
        self._blank(doc)

    def _add_signature_block(self, doc, info):
        self._blank(doc)
        doc.add_paragraph("Dated: ____________________")
        self._blank(doc)
        if info is not None:
            doc.add_paragraph(_value(info, "firm_name", "") or "")
        doc.add_paragraph("By: ______________________________")
        if info is not None:
            doc.add_paragraph(_value(info, "name", "") or "")
        doc.add_paragraph("Attorneys for Plaintiff")


# Singleton instance
fee_document_generator = FeeDocumentGenerator()
