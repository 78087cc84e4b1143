"""site_lens.parser: extraction of page metadata from rendered HTML."""

from .html_parser import DocumentInfo, parse_document

__all__ = ["DocumentInfo", "parse_document"]
