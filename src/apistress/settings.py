from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

REPORTS_DIR_ENV = "APISTRESS_REPORTS_DIR"
LOG_LEVEL_ENV = "APISTRESS_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    reports_dir: Path = Path("reports")
    log_level: int = logging.WARNING

    @classmethod
    def from_env(cls) -> "Settings":
        reports_dir = Path(os.getenv(REPORTS_DIR_ENV) or "reports")
        level_name = (os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.WARNING
        return cls(reports_dir=reports_dir, log_level=level)
