import logging, sys

from app.config import settings

# everything a bare LogRecord carries; the rest came in through extra={...}
_RECORD_FIELDS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class BoardFormatter(logging.Formatter):
    """board.* events are terse names; their context rides along as key=value pairs."""
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS and not k.startswith("_")}
        if not extras:
            return line
        return line + " " + " ".join(f"{k}={v!r}" for k, v in sorted(extras.items()))


def setup_logging(level=None):
    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL.upper())
    # idempotent: uvicorn reloads and tests import main more than once
    if any(getattr(h, "_board_handler", False) for h in root.handlers):
        return root
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(BoardFormatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    ))
    handler._board_handler = True
    root.addHandler(handler)
    return root
