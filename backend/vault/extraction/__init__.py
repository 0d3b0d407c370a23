from vault.extraction.parsers import PARSERS, parse_fields, parse_document_text
from vault.extraction.common import parse_date, parse_address, INDIAN_STATES

__all__ = ["PARSERS", "parse_fields", "parse_document_text", "parse_date", "parse_address", "INDIAN_STATES"]
