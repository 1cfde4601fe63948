"""
Jira to Memory Normalize Service
Converts raw Jira issues to canonical searchable documents

Components:
- normalizer.py: TicketNormalizer, ADF text extraction
"""

from .normalizer import TicketDecodeError, TicketNormalizer, extract_adf_text, normalize_ticket

__all__ = ["TicketNormalizer", "TicketDecodeError", "extract_adf_text", "normalize_ticket"]
