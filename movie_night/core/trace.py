import uuid
from contextvars import ContextVar

# один trace_id на одно внешнее событие (сообщение или реакцию)
_trace_id: ContextVar[str] = ContextVar("trace_id", default="-")


def get_trace_id() -> str:
    return _trace_id.get()


def set_trace_id(value: str) -> None:
    _trace_id.set(value)


def new_trace_id() -> str:
    value = uuid.uuid4().hex
    _trace_id.set(value)
    return value
