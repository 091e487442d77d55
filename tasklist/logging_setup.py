import logging
import sys

_HANDLER_NAME = "tasklist-console"


class _ConsoleNoiseFilter(logging.Filter):
    """Keep our own records; let third-party ones through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "tasklist" or record.name.startswith("tasklist."):
            return True
        # uvicorn access/error lines are the server's own output
        if record.name.startswith("uvicorn"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str = "INFO") -> None:
    """Install the console handler on the root logger.

    Safe to call more than once: the handler is only added the first time,
    later calls just adjust the level.
    """
    root = logging.getLogger()
    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler.addFilter(_ConsoleNoiseFilter())
        root.addHandler(handler)

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    handler.setLevel(numeric)
    logging.getLogger("tasklist").setLevel(numeric)
    if root.level > numeric or root.level == logging.NOTSET:
        root.setLevel(numeric)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
