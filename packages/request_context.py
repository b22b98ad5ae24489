from contextvars import ContextVar
from contextlib import contextmanager
import uuid


request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
import_run_id_var: ContextVar[str | None] = ContextVar("import_run_id", default=None)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def import_run_context(run_id: str | None):
    token = import_run_id_var.set(run_id)
    try:
        yield
    finally:
        import_run_id_var.reset(token)
