"""
lemonlaw - Terminal utility to:
  1) Compare billed time against a Laffey Matrix rate schedule
  2) Write the Laffey Matrix comparison exhibit as DOCX
  3) Look up the Laffey tier for a given experience

Billing files are YAML (or JSON) with ``entries``, ``schedule`` and an
optional ``roster``.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from lemonlaw.core.config import settings
from lemonlaw.generators.fee_documents import FeeDocumentGenerator
from lemonlaw.services.fee_report import format_comparison
from lemonlaw.services.laffey_service import (
    FeeCalculationError,
    RateSchedule,
    RosterAttorney,
    TimeEntry,
    calculate_comparison,
    resolve_tier,
)

app = typer.Typer(add_completion=False, help="Lemon law fee helper: Laffey Matrix comparisons and exhibits.")


def _first(item: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return default


def _load_billing_file(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise typer.BadParameter("Billing file must contain a mapping with 'entries' and 'schedule'.")
    if "schedule" not in data:
        raise typer.BadParameter("Billing file has no 'schedule' section.")
    return data


def _entries(raw: List[Dict[str, Any]]) -> List[TimeEntry]:
    return [
        TimeEntry(
            attorney=_first(item, "attorney", "attorney_name", "attorneyName", default=""),
            hours=_first(item, "hours", default=0),
            billed_rate=_first(item, "rate", "billed_rate", "billedRate", default=0),
            years_experience=_first(item, "years_experience", "yearsExperience"),
            date=str(_first(item, "date", default="")),
            description=_first(item, "description", default=""),
        )
        for item in raw or []
    ]


def _roster(raw: List[Dict[str, Any]]) -> List[RosterAttorney]:
    return [
        RosterAttorney(
            name=_first(item, "name", default=""),
            years_experience=_first(item, "years_experience", "yearsExperience", "years_out_of_law_school"),
            is_paralegal=bool(_first(item, "is_paralegal", "isParalegal", default=False)),
        )
        for item in raw or []
    ]


def _print_table(headers: List[str], rows: List[List[str]]):
    widths = [max(len(str(r[i])) for r in [headers] + rows) for i in range(len(headers))]
    line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    typer.echo(line)
    typer.echo("-" * len(line))
    for row in rows:
        typer.echo("  ".join(
            str(v).ljust(w) if i == 0 else str(v).rjust(w)
            for i, (v, w) in enumerate(zip(row, widths))
        ))


@app.command()
def compare(
    billing_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML/JSON with entries, schedule, roster."),
    out: Optional[Path] = typer.Option(None, help="Write the Laffey comparison exhibit to this .docx path."),
    default_years: int = typer.Option(
        settings.DEFAULT_YEARS_EXPERIENCE, help="Experience assumed when neither entry nor roster has it."
    ),
):
    """
    Compare billed fees against the Laffey Matrix and print the result.

    Examples:
      lemonlaw compare billing.yml
      lemonlaw compare billing.yml --out exhibit_c.docx
    """
    data = _load_billing_file(billing_file)
    try:
        result = calculate_comparison(
            _entries(data.get("entries")),
            RateSchedule.from_mapping(data["schedule"] or {}),
            _roster(data.get("roster")),
            default_years,
        )
    except FeeCalculationError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1)

    report = format_comparison(result)
    _print_table(report.headers, report.rows)
    typer.echo("")
    typer.echo(report.conclusion)

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        doc = FeeDocumentGenerator().build("laffey_exhibit", data.get("case") or {}, report=report)
        doc.save(str(out))
        typer.echo(f"Wrote {out}")


@app.command()
def tier(years: int = typer.Argument(..., help="Years of experience.")):
    """
    Print the Laffey tier for a number of years of experience.
    """
    try:
        typer.echo(resolve_tier(years).value)
    except FeeCalculationError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
