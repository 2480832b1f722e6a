"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DATA_DIR = Path("./data/placeholder")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_name: str
    max_dimension: int
    max_border: int
    max_label: int
    default_background: str
    font_path: Path | None
    footer_text: str
    perf_log_path: Path | None
    lock_stripes: int
    cors_origins: list[str]
    host: str
    port: int

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def load_settings() -> Settings:
    data_dir = Path(os.getenv("PLACEHOLDER_DATA_DIR", DEFAULT_DATA_DIR)).resolve()
    db_name = os.getenv("PLACEHOLDER_DB_NAME", "").strip() or "images.db"
    max_dimension = max(1, int(os.getenv("PLACEHOLDER_MAX_DIMENSION", "3000")))
    max_border = max(0, int(os.getenv("PLACEHOLDER_MAX_BORDER", "255")))
    max_label = max(1, int(os.getenv("PLACEHOLDER_MAX_LABEL", "64")))
    default_background = os.getenv("PLACEHOLDER_DEFAULT_BG", "").strip() or "FFD8C2"
    font_path_raw = os.getenv("PLACEHOLDER_FONT_PATH", "").strip()
    font_path = Path(font_path_raw) if font_path_raw else None
    footer_text = os.getenv("PLACEHOLDER_FOOTER_TEXT", "").strip()
    perf_log_raw = os.getenv("PERF_LOG_PATH", "").strip()
    perf_log_path = Path(perf_log_raw) if perf_log_raw else None
    lock_stripes = max(1, int(os.getenv("PLACEHOLDER_LOCK_STRIPES", "64")))
    cors_origins = [
        origin.strip()
        for origin in os.getenv("PLACEHOLDER_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
    host = os.getenv("PLACEHOLDER_HOST", "127.0.0.1")
    port = int(os.getenv("PLACEHOLDER_PORT", "8080"))
    return Settings(
        data_dir=data_dir,
        db_name=db_name,
        max_dimension=max_dimension,
        max_border=max_border,
        max_label=max_label,
        default_background=default_background,
        font_path=font_path,
        footer_text=footer_text,
        perf_log_path=perf_log_path,
        lock_stripes=lock_stripes,
        cors_origins=cors_origins,
        host=host,
        port=port,
    )
