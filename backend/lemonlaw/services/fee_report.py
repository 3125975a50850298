"""
Lemon Law Fee Suite
Fee Comparison Report Assembler

Turns a ComparisonResult into the table and sentences embedded in the
fee motion and the Laffey Matrix exhibit.
"""
from dataclasses import dataclass, field
from typing import List

from lemonlaw.services.laffey_service import ComparisonResult


REPORT_HEADERS = ["Attorney", "Hours", "Billed Rate", "Benchmark Rate", "Billed Total", "Benchmark Total"]

INTRO_SENTENCE = (
    "The Laffey Matrix is a widely-used benchmark for reasonable attorney's fees "
    "in complex civil litigation. The following comparison sets the rates charged "
    "against prevailing market rates for attorneys of similar experience."
)


@dataclass
class FeeComparisonReport:
    """Table and narrative ready for document rendering"""
    headers: List[str]
    rows: List[List[str]]
    sentences: List[str] = field(default_factory=list)
    is_at_or_below_benchmark: bool = True

    @property
    def data_rows(self) -> List[List[str]]:
        return self.rows[:-1]

    @property
    def totals_row(self) -> List[str]:
        return self.rows[-1]

    @property
    def conclusion(self) -> str:
        return self.sentences[-1]


def format_currency(amount: float) -> str:
    """$1,234.56 with a leading minus for negatives"""
    amount = round(amount, 2)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_hours(hours: float) -> str:
    return f"{hours:.1f}"


def conclusion_sentence(result: ComparisonResult) -> str:
    if result.is_at_or_below_benchmark:
        return (
            f"The fees billed ({format_currency(result.total_billed)}) are "
            f"{format_currency(result.difference)} below the Laffey Matrix amount "
            f"({format_currency(result.total_benchmark)}), demonstrating that the fees "
            f"requested are reasonable and conservative."
        )
    return "The fees billed are consistent with prevailing market rates as reflected in the Laffey Matrix."


def format_comparison(result: ComparisonResult) -> FeeComparisonReport:
    """Format a comparison into headers, per-attorney rows, a totals row and sentences"""
    rows = [
        [
            a.attorney,
            format_hours(a.hours),
            format_currency(a.billed_rate),
            format_currency(a.benchmark_rate),
            format_currency(a.billed_amount),
            format_currency(a.benchmark_amount),
        ]
        for a in result.by_attorney
    ]
    rows.append([
        "TOTAL",
        "",
        "",
        "",
        format_currency(result.total_billed),
        format_currency(result.total_benchmark),
    ])

    return FeeComparisonReport(
        headers=list(REPORT_HEADERS),
        rows=rows,
        sentences=[INTRO_SENTENCE, conclusion_sentence(result)],
        is_at_or_below_benchmark=result.is_at_or_below_benchmark,
    )
