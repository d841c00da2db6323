import json
import logging
from datetime import datetime, timezone


_event_logger = logging.getLogger("kolia.events")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(message)s")
    root.setLevel(level.upper())


def log_event(level: str, event: str, **fields) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level.lower(),
        "event": event,
    }
    payload.update(fields or {})
    try:
        _event_logger.log(
            _LEVELS.get(level.lower(), logging.INFO),
            json.dumps(payload, ensure_ascii=False, default=str),
        )
    except (TypeError, ValueError):
        # best-effort logging
        pass
