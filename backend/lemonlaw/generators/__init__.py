"""
Lemon Law Fee Suite
Document Generators Module
"""
from lemonlaw.generators.fee_documents import fee_document_generator, FeeDocumentGenerator

__all__ = ["fee_document_generator", "FeeDocumentGenerator"]
