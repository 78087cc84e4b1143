# site_lens/report/json_report.py

"""
JSON report of a comparison run.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from site_lens.aggregator import ComparisonSummary
from site_lens.crawler.models import Manifest
from site_lens.errors import PersistenceError


def render_json(
    summary: ComparisonSummary,
    output_path: Path | str,
    *,
    identifier: str,
    manifest: Manifest,
    generated_at: Optional[datetime] = None,
) -> Path:
    """
    Save the comparison *summary* as JSON at *output_path*.

    :param summary: ComparisonSummary of the run
    :param output_path: path of the JSON file
    :return: Path of the saved file

    Example:
    ```python
    from site_lens.report.json_report import render_json
    report_path = render_json(summary, 'result/compare.json', identifier=ident, manifest=manifest)
    ```
    """
    output = Path(output_path)
    data = {
        'baseline': identifier,
        'target': manifest.start_url,
        'hostname': manifest.hostname,
        'baselineCreatedAt': manifest.created_at.isoformat(),
        'generatedAt': (generated_at or datetime.now()).isoformat(),
        **summary.to_dict(),
    }

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with output.open('w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
    except OSError as exc:
        raise PersistenceError(f"could not save JSON report {output}: {exc}") from exc

    return output
