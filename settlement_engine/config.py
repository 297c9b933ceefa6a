from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./settlement.db"
    week_start: int = 0
    log_level: str = "INFO"
    report_top_n: int = 10
    ceiling_policy: str = "pass"
    report_retention_days: int = 90


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        week_start=int(os.getenv("WEEK_START", Settings.week_start)),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).upper(),
        report_top_n=int(os.getenv("REPORT_TOP_N", Settings.report_top_n)),
        ceiling_policy=os.getenv("CEILING_POLICY", Settings.ceiling_policy).lower(),
        report_retention_days=int(os.getenv("REPORT_RETENTION_DAYS", Settings.report_retention_days)),
    )


settings = load_settings()
