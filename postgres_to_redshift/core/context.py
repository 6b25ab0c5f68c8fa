from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4


@dataclass(frozen=True)
class RunContext:
    started_at: datetime
    log_dir: Path
    run_id: str

    @classmethod
    def create(cls, log_dir: Path) -> "RunContext":
        started_at = datetime.now(timezone.utc)
        run_id = f"{started_at.strftime('%Y%m%dT%H%M%S')}-{uuid4().hex[:8]}"
        return cls(started_at=started_at, log_dir=log_dir, run_id=run_id)
