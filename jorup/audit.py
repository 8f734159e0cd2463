"""Audit trail of release and node lifecycle events."""

from datetime import datetime, timezone
from pathlib import Path


class AuditLogger:
    """Appends one line per lifecycle event to the jorup audit log.

    Line format: ISO8601_TIMESTAMP [EVENT] key1=value1 key2=value2
    Example: 2026-02-01T10:00:00Z [SPAWN] channel=testnet pid=4242 port=8443

    Events: INSTALL, DEFAULT, REMOVE, SPAWN, RUN, SHUTDOWN, STALE_SESSION
    """

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path

    def log(self, event: str, **fields: str | int | float | bool | Path | None) -> None:
        """Record ``event`` with its fields.

        ``None`` values are dropped and values containing spaces are quoted.
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        pairs = []
        for key, value in fields.items():
            if value is None:
                continue
            text = str(value)
            if " " in text:
                text = f'"{text}"'
            pairs.append(f"{key}={text}")

        line = f"{timestamp} [{event}]"
        if pairs:
            line = f"{line} {' '.join(pairs)}"

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_path, "a") as f:
            f.write(line + "\n")
