"""site_lens.report.html_report: HTML comparison report rendered with Jinja2."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_lens.aggregator import Classification, ComparisonSummary
from site_lens.crawler.models import Manifest
from site_lens.errors import PersistenceError

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


def render_html(
    summary: ComparisonSummary,
    output_path: Union[Path, str],
    *,
    identifier: str,
    manifest: Manifest,
    template_dir: Union[Path, str, None] = None,
    generated_at: Optional[datetime] = None,
) -> Path:
    """Render the HTML report from ``report.html.j2`` and save it.

    Args:
        summary: ComparisonSummary of the run.
        output_path: path of the resulting HTML file.
        identifier: baseline the run was compared against.
        manifest: that baseline's manifest.
        template_dir: directory with Jinja2 templates; the bundled one by default.

    Returns:
        Path of the saved HTML file.
    """
    output_path = Path(output_path)
    env = Environment(
        loader=FileSystemLoader(str(template_dir or DEFAULT_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template("report.html.j2")

    context: dict[str, Any] = {
        "identifier": identifier,
        "manifest": manifest,
        "summary": summary,
        "changed": summary.of(Classification.CHANGED),
        "errored": summary.of(Classification.ERRORED),
        "matched": summary.of(Classification.MATCHED),
        "generated_at": generated_at or datetime.now(),
    }

    html_content = template.render(**context)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html_content, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"could not save HTML report {output_path}: {exc}") from exc

    return output_path
