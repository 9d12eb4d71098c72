"""
Memory Log

Append-only daily log under ``<data_dir>/memory/YYYY-MM-DD.md``. The
summary of yesterday and today is fed to the classifier so it can see
recent decisions.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

log = structlog.get_logger()

EMPTY_MEMORY_SUMMARY = "No memory entries for today or yesterday."


def _date_key(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


class MemoryLog:
    """Daily markdown memory files."""

    def __init__(self, memory_dir: Path):
        self._memory_dir = Path(memory_dir)

    @property
    def memory_dir(self) -> Path:
        return self._memory_dir

    def path_for(self, moment: datetime) -> Path:
        return self._memory_dir / f"{_date_key(moment)}.md"

    def summary(self, now: datetime | None = None) -> str:
        """Contents of yesterday's and today's logs, oldest first."""
        now = now or datetime.now(timezone.utc)
        parts: list[str] = []
        for moment in (now - timedelta(days=1), now):
            path = self.path_for(moment)
            try:
                content = path.read_text(encoding="utf-8").strip()
            except FileNotFoundError:
                continue
            except (OSError, UnicodeDecodeError) as e:
                log.warning("memory_read_failed", path=str(path), error=str(e))
                continue
            if content:
                parts.append(f"## {_date_key(moment)}\n{content}")

        if not parts:
            return EMPTY_MEMORY_SUMMARY
        return "\n\n".join(parts)

    def append(self, entry: str, now: datetime | None = None) -> None:
        """Append one entry to today's log. Failures are logged, not raised."""
        path = self.path_for(now or datetime.now(timezone.utc))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(f"\n{entry}\n")
        except OSError as e:
            log.warning("memory_append_failed", path=str(path), error=str(e))
