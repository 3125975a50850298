"""
Lemon Law Fee Suite
AI Service - OpenAI Extraction of Repair Orders, Billing and Cost Records

The model returns loosely structured JSON; everything here coerces it
into records the fee calculator can accept and drops the rest.
"""
import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from lemonlaw.core.config import settings
from lemonlaw.services.repair_history import days_between

logger = logging.getLogger(__name__)


REPAIR_ORDERS_SYSTEM_PROMPT = """You are extracting dealership repair orders for a California lemon law case.

Extract ALL repair visits in the document. Each time the vehicle was brought in for service is a separate repair order.

Return a JSON object {"repair_orders": [...]} where each repair order has EXACTLY these fields:
{
  "ro_number": string or null,
  "dealership": string or null,
  "date_in": "YYYY-MM-DD" or null,
  "date_out": "YYYY-MM-DD" or null,
  "mileage_in": integer or null,
  "mileage_out": integer or null,
  "days_down": integer or null,
  "customer_concern": string or null,
  "work_performed": string or null,
  "parts_replaced": string or null,
  "category": "Engine" | "Transmission" | "Electrical" | "Suspension" | "Brakes" | "HVAC" | "Battery" | "Drivetrain" | "Software" | "Body" | "Other",
  "resolved": "Yes" | "No" | "Partial"
}

Rules:
- Convert dates to YYYY-MM-DD (e.g. "March 15, 2024" -> "2024-03-15")
- Mileage is an integer without commas (22450, not "22,450")
- Calculate days_down from date_in and date_out if the document does not state it
- category and resolved MUST be exactly one of the listed values
- If a field cannot be determined, use null"""

BILLING_SYSTEM_PROMPT = """You are extracting attorney billing records for a lemon law case.

Return a JSON object {"entries": [...]} where each entry has EXACTLY these fields:
{
  "date": "YYYY-MM-DD" or null,
  "attorney": string or null,
  "hours": number or null,
  "rate": number or null,
  "description": string or null,
  "type": "Billable" or "Non-billable"
}

Rules:
- Convert dates to YYYY-MM-DD (e.g. "01/20/2024" -> "2024-01-20")
- Hours are decimal numbers (2.5, not "2:30")
- Rate is a number without $ or commas (650, not "$650")
- If a field cannot be determined, use null"""

COSTS_SYSTEM_PROMPT = """You are extracting litigation costs for a lemon law case.

Return a JSON object {"entries": [...]} where each entry has EXACTLY these fields:
{
  "date": "YYYY-MM-DD" or null,
  "description": string or null,
  "amount": number or null,
  "category": "Filing" | "Service" | "Appearance" | "Expert" | "Deposition" | "Other",
  "vendor": string or null
}

Amounts are numbers without $ or commas. If a field cannot be determined, use null."""

COST_CATEGORIES = ["Filing", "Service", "Appearance", "Expert", "Deposition", "Other"]

REPAIR_CATEGORIES = [
    "Engine", "Transmission", "Electrical", "Suspension", "Brakes", "HVAC",
    "Battery", "Drivetrain", "Software", "Body", "Other",
]
RESOLVED_VALUES = ["Yes", "No", "Partial"]

REPAIR_KEYWORDS = [
    "repair order", "work order", "service order", "mileage", "customer concern",
    "work performed", "parts replaced", "dealership", "vin",
]
BILLING_KEYWORDS = [
    "billable", "hours", "hourly rate", "time entry", "attorney fees",
    "legal services", "professional services",
]
COST_KEYWORDS = [
    "filing fee", "service of process", "court reporter", "deposition cost", "expert fee",
    "mediation fee", "appearance fee", "transcript", "cost memo", "cost bill",
]
# Two distinct cost phrases mark a cost ledger regardless of other matches
COST_THRESHOLD = 2


class AIServiceError(Exception):
    """The AI provider could not be reached or refused the request"""


# ============================================================
# RESPONSE PARSING
# ============================================================

def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[,$\s]", "", str(value))
    if cleaned.lower().endswith(("hrs", "hr", "h")):
        cleaned = cleaned.rstrip("hHrRsS")
    try:
        return float(cleaned)
    except ValueError:
        return None


def _load_records(raw: str) -> List[Dict[str, Any]]:
    """Pull a list of dicts out of a model reply (object with entries, or a bare array)"""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        match = re.search(r"\[[\s\S]*\]", raw or "")
        if not match:
            logger.error("AI response is not JSON: %s", (raw or "")[:500])
            return []
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.error("AI response array is not valid JSON: %s", match.group(0)[:500])
            return []

    if isinstance(data, dict):
        data = (
            data.get("entries") or data.get("repair_orders")
            or data.get("billing_entries") or data.get("costs") or []
        )
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _normalize_billing_type(value: Any) -> str:
    text = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
    if text in ("non-billable", "nonbillable", "no-charge", "nc"):
        return "Non-billable"
    return "Billable"


def parse_billing_entries(raw: str) -> List[Dict[str, Any]]:
    """Coerce a model reply into billing entries; drop records without attorney or hours"""
    entries = []
    for item in _load_records(raw):
        attorney = (item.get("attorney") or "").strip()
        hours = _to_number(item.get("hours"))
        if not attorney or hours is None or hours < 0:
            continue
        rate = _to_number(item.get("rate"))
        if rate is None or rate < 0:
            rate = 0.0
        entries.append({
            "date": item.get("date") or None,
            "attorney": attorney,
            "hours": hours,
            "rate": rate,
            "description": (item.get("description") or "").strip(),
            "type": _normalize_billing_type(item.get("type")),
        })
    return entries


def parse_costs(raw: str) -> List[Dict[str, Any]]:
    """Coerce a model reply into cost records; drop records without an amount"""
    costs = []
    for item in _load_records(raw):
        amount = _to_number(item.get("amount"))
        if amount is None or amount < 0:
            continue
        category = str(item.get("category") or "Other").strip().title()
        if category not in COST_CATEGORIES:
            category = "Other"
        costs.append({
            "date": item.get("date") or None,
            "description": (item.get("description") or "").strip(),
            "amount": amount,
            "category": category,
            "vendor": (item.get("vendor") or "").strip(),
        })
    return costs


def _to_iso_date(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        return None


def _to_mileage(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or number < 0:
        return None
    return int(round(number))


def _normalize_choice(value: Any, choices: List[str], default: str) -> str:
    text = str(value or "").strip().lower()
    for choice in choices:
        if choice.lower() == text:
            return choice
    return default


def parse_repair_orders(raw: str, source_file: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Coerce a model reply into repair orders.

    Dates that are not ISO are dropped, mileage becomes an integer and
    days_down is computed from the dates when the model leaves it out.
    Records with no RO number, check-in date, concern or work performed
    carry nothing usable and are skipped.
    """
    repairs = []
    for item in _load_records(raw):
        ro_number = str(item.get("ro_number") or "").strip() or None
        date_in = _to_iso_date(item.get("date_in"))
        date_out = _to_iso_date(item.get("date_out"))
        concern = (item.get("customer_concern") or "").strip()
        work = (item.get("work_performed") or "").strip()
        if not (ro_number or date_in or concern or work):
            continue

        days_down = _to_number(item.get("days_down"))
        if days_down is None or days_down < 0:
            days_down = days_between(
                date.fromisoformat(date_in) if date_in else None,
                date.fromisoformat(date_out) if date_out else None,
            )

        repairs.append({
            "ro_number": ro_number,
            "dealership": (item.get("dealership") or "").strip() or None,
            "date_in": date_in,
            "date_out": date_out,
            "mileage_in": _to_mileage(item.get("mileage_in")),
            "mileage_out": _to_mileage(item.get("mileage_out")),
            "days_down": int(days_down),
            "customer_concern": concern,
            "work_performed": work,
            "parts_replaced": (item.get("parts_replaced") or "").strip(),
            "category": _normalize_choice(item.get("category"), REPAIR_CATEGORIES, "Other"),
            "resolved": _normalize_choice(item.get("resolved"), RESOLVED_VALUES, "No"),
            "source_file": source_file,
        })
    return repairs


def _keyword_score(text: str, keywords: List[str]) -> int:
    """Number of distinct keywords present as whole words"""
    return sum(1 for k in keywords if re.search(rf"\b{re.escape(k)}\b", text))


def detect_document_type(text: str) -> str:
    """
    Guess whether extracted text is a repair order, a billing statement or
    a cost ledger. Dealership paperwork is the most common upload, so
    text with no signal is treated as repair orders.
    """
    lowered = (text or "").lower()
    if _keyword_score(lowered, COST_KEYWORDS) >= COST_THRESHOLD:
        return "costs"
    if _keyword_score(lowered, BILLING_KEYWORDS) > _keyword_score(lowered, REPAIR_KEYWORDS):
        return "billing"
    return "repair_orders"


# ============================================================
# SERVICE
# ============================================================

class AIService:
    """
    OpenAI integration for pulling repair orders, billing and cost records out of
    uploaded statements.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.client = client
        if self.client is None and self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key)

    @property
    def is_available(self) -> bool:
        return self.client is not None

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.is_available:
            raise AIServiceError("OPENAI_API_KEY not configured")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.OPENAI_TEMPERATURE,
                max_tokens=settings.OPENAI_MAX_TOKENS,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error("AI extraction request failed: %s", e)
            raise AIServiceError(str(e)) from e
        return response.choices[0].message.content or ""

    async def extract_repair_orders(self, text: str, source_file: Optional[str] = None) -> List[Dict[str, Any]]:
        raw = await self._complete(
            REPAIR_ORDERS_SYSTEM_PROMPT,
            f"Extract all repair orders from this document:\n\n{text[:settings.MAX_EXTRACT_CHARS]}",
        )
        repairs = parse_repair_orders(raw, source_file=source_file)
        logger.info("Extracted %d repair orders", len(repairs))
        return repairs

    async def extract_billing_entries(self, text: str) -> List[Dict[str, Any]]:
        raw = await self._complete(
            BILLING_SYSTEM_PROMPT,
            f"Extract all billing entries from this document:\n\n{text[:settings.MAX_EXTRACT_CHARS]}",
        )
        entries = parse_billing_entries(raw)
        logger.info("Extracted %d billing entries", len(entries))
        return entries

    async def extract_costs(self, text: str) -> List[Dict[str, Any]]:
        raw = await self._complete(
            COSTS_SYSTEM_PROMPT,
            f"Extract all litigation costs from this document:\n\n{text[:settings.MAX_EXTRACT_CHARS]}",
        )
        costs = parse_costs(raw)
        logger.info("Extracted %d cost records", len(costs))
        return costs


# Singleton instance
ai_service = AIService()
