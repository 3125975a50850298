"""
Lemon Law Fee Suite
API Routers Module
"""
from lemonlaw.api import cases, billing, repair_orders, attorneys, fees, documents

__all__ = [
    "cases",
    "billing",
    "repair_orders",
    "attorneys",
    "fees",
    "documents",
]
