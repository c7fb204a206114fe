import logging
import sys
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from pythonjsonlogger import jsonlogger
from movie_night.core.trace import get_trace_id
from movie_night.core.config import settings


class TraceContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # поля проставляем ДО того, как запись уйдёт в очередь
        record.trace_id = (getattr(record, "trace_id", None)
                           or get_trace_id() or "-")
        record.service = getattr(record, "service", None) or settings.app_name
        record.env = getattr(record, "env", None) or settings.env
        return True


_listener: QueueListener | None = None


def setup_json_logging(service: str = "movie_night_bot",
                       level: int = logging.INFO) -> None:
    global _listener

    root = logging.getLogger()
    root.setLevel(level)

    fmt = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s"
        " %(message)s %(pathname)s %(lineno)d "
        "%(trace_id)s %(service)s %(env)s"
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(fmt)
    stream_handler.addFilter(TraceContextFilter())

    q: Queue = Queue(-1)
    queue_handler = QueueHandler(q)
    queue_handler.addFilter(TraceContextFilter())

    if _listener:
        _listener.stop()
    _listener = QueueListener(q, stream_handler, respect_handler_level=True)
    _listener.start()

    root.handlers = [queue_handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    # httpx пишет по строке на каждый вызов шлюза, это шум
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "logger_initialized",
        extra={"service": service})


def shutdown_logging() -> None:
    """Stop the queue listener on application shutdown."""
    global _listener
    if _listener:
        _listener.stop()
        _listener = None
