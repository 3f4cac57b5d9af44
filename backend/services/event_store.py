from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from services.errors import StorageError
from util.jsonlog import get_logger, log_event
from util.time import utcnow


logger = get_logger("store")


class DurableStore(Protocol):
    """Persistence boundary for the event collection. Holds one opaque text blob."""

    def read(self) -> Optional[str]:
        """Current blob, or None when nothing has been stored yet. Raises StorageError if unreadable."""
        ...

    def write(self, blob: str) -> None:
        """Replace the blob. Raises StorageError on failure."""
        ...

    def quarantine(self) -> None:
        """Set the current (unreadable) blob aside so a later write cannot destroy it."""
        ...


class JsonFileStore:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"could not read {self.path}: {e}") from e

    def write(self, blob: str) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Temp file in the same directory so os.replace stays atomic.
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log_event(
                logger,
                level="ERROR",
                event="store_write_failed",
                msg="event store write failed",
                path=str(self.path),
                error={"type": type(e).__name__, "message": str(e)},
            )
            raise StorageError(f"could not write {self.path}: {e}") from e

    def quarantine(self) -> None:
        if not self.path.exists():
            return
        stamp = utcnow().strftime("%Y%m%dT%H%M%S%fZ")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            log_event(
                logger,
                level="ERROR",
                event="store_quarantine_failed",
                msg="could not move corrupt event store aside",
                path=str(self.path),
                error={"type": type(e).__name__, "message": str(e)},
            )
            return
        log_event(
            logger,
            level="WARNING",
            event="store_quarantined",
            msg="corrupt event store moved aside",
            path=str(self.path),
            quarantined_to=str(target),
        )


class InMemoryStore:
    def __init__(self, blob: Optional[str] = None) -> None:
        self.blob = blob
        self.writes = 0
        self.quarantined: list[str] = []

    def read(self) -> Optional[str]:
        return self.blob

    def write(self, blob: str) -> None:
        self.blob = blob
        self.writes += 1

    def quarantine(self) -> None:
        if self.blob is not None:
            self.quarantined.append(self.blob)
            self.blob = None
