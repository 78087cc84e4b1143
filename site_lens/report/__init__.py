"""site_lens.report: text, JSON and HTML reports for crawls and comparisons."""

from .html_report import render_html
from .json_report import render_json
from .text_report import render_compare_text, render_crawl_text, write_report

__all__ = ["render_compare_text", "render_crawl_text", "render_html", "render_json", "write_report"]
