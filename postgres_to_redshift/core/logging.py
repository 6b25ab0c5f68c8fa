from __future__ import annotations

import logging
from pathlib import Path

from ..utils.fs import ensure_dir

# minio logs each HTTP retry through urllib3; keep per-table progress readable.
QUIET_LOGGERS = ("urllib3",)


def setup_logging(log_dir: Path, run_id: str) -> logging.Logger:
    ensure_dir(log_dir)
    logger = logging.getLogger("pipeline")
    logger.setLevel(logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        file_handler = logging.FileHandler(log_dir / f"migration_{run_id}.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
