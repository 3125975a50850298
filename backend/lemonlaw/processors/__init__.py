"""
Lemon Law Fee Suite
Document Processors Module
"""
from lemonlaw.processors.text_extractor import extract_text, UnsupportedDocumentError

__all__ = ["extract_text", "UnsupportedDocumentError"]
