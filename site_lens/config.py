# === FILE: site_lens/config.py ===
"""
Loading and validation of the SiteLens configuration.
Pydantic describes the schema; YAML and JSON files are both accepted.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

from site_lens.crawler.classifier import MainPageRule


class LensConfig(BaseModel):
    """Settings shared by one crawl or comparison run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: Optional[HttpUrl] = Field(None, description="Default start URL for `crawl`.")
    baseline_dir: Path = Field(Path("baseline"), description="Root of the baseline store.")
    result_dir: Path = Field(Path("result"), description="Where comparison runs and reports go.")

    viewport_width: int = Field(1920, ge=1)
    viewport_height: int = Field(1080, ge=1)
    headless: bool = True
    user_agent: Optional[str] = Field(None, min_length=1, description="Browser User-Agent override.")
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"

    page_timeout: float = Field(30.0, gt=0, description="Navigation timeout per page (seconds).")
    capture_timeout: float = Field(120.0, gt=0, description="Hard limit for one page capture (seconds).")
    concurrency: int = Field(1, ge=1, description="Number of capture workers.")
    surfaces: int = Field(1, ge=1, description="Number of browser tabs in the pool.")

    max_pages: Optional[int] = Field(None, ge=1, description="Stop claiming new pages after this many.")
    max_depth: Optional[int] = Field(None, ge=0, description="Maximum link hops from the start URL.")
    respect_robots: bool = False

    pixel_threshold: float = Field(0.1, ge=0.0, le=1.0, description="Per-pixel colour tolerance.")
    match_threshold: float = Field(0.01, gt=0.0, le=1.0, description="Diff ratio below which a page matches.")
    main_page_rule: MainPageRule = MainPageRule.DEPTH

    @field_validator("baseline_dir", "result_dir", mode="before")
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @model_validator(mode="after")
    def _check_dirs_distinct(self) -> LensConfig:
        if Path(self.baseline_dir).resolve() == Path(self.result_dir).resolve():
            raise ValueError("baseline_dir and result_dir must be different directories")
        return self


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> LensConfig:
    """
    Read YAML or JSON and return a validated LensConfig.

    Without *path* the default ``configs/default.yaml`` is used when present,
    otherwise built-in defaults. An explicit path that does not exist raises
    FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return LensConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return LensConfig(**data)


__all__ = ["LensConfig", "load_config", "ValidationError"]
