from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

HERE = Path(__file__).resolve()
PROGRAMS_DIR = HERE.parent
REPORTS_DIR = PROGRAMS_DIR / "reports"


def _default_report_dir() -> Path:
    env = (os.getenv("PROGRAM_ETL_REPORT_DIR") or "").strip()
    return Path(env).resolve() if env else REPORTS_DIR


@dataclass
class Config:
    """Import settings loaded from YAML with sensible defaults."""
    batch_size: int = 50
    batch_delay: float = 0.25
    report_dir: Path = field(default_factory=_default_report_dir)
    default_country: str = "USA"
    data_source: str = "program_import"
    validate_websites: bool = True
    organization_aliases: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.batch_delay < 0:
            raise ValueError(f"batch_delay must not be negative, got {self.batch_delay}")

    @staticmethod
    def from_yaml(path: Path) -> "Config":
        """Load settings from a YAML file. Malformed YAML or values raise ValueError."""
        with open(path, "r", encoding="utf-8") as f:
            try:
                data: Dict[str, Any] = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"{path}: malformed YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of settings")
        report_dir_val = data.get("report_dir")
        report_dir = Path(report_dir_val).resolve() if report_dir_val and str(report_dir_val).strip() else _default_report_dir()
        aliases = data.get("organization_aliases") or {}
        if not isinstance(aliases, dict):
            raise ValueError("organization_aliases must be a mapping of raw name -> canonical name")
        try:
            batch_size = int(data.get("batch_size", 50))
            batch_delay = float(data.get("batch_delay", 0.25))
        except (TypeError, ValueError) as e:
            raise ValueError(f"{path}: batch_size and batch_delay must be numbers") from e
        return Config(
            batch_size=batch_size,
            batch_delay=batch_delay,
            report_dir=report_dir,
            default_country=str(data.get("default_country") or "USA"),
            data_source=str(data.get("data_source") or "program_import"),
            validate_websites=bool(data.get("validate_websites", True)),
            organization_aliases={str(k).strip(): str(v).strip() for k, v in aliases.items() if k and v},
        )


def load_config(config_path: str, base_dir: Path) -> Config:
    """Config from an optional YAML path; relative paths are taken from `base_dir`."""
    config_path = (config_path or "").strip()
    if not config_path:
        return Config()
    p = Path(config_path)
    if not p.is_absolute():
        p = (base_dir / p).resolve()
    return Config.from_yaml(p)
