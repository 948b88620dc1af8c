# school_facilities/context.py
from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

operation_id_ctx: ContextVar[str | None] = ContextVar("operation_id", default=None)


def get_operation_id() -> str | None:
    return operation_id_ctx.get()


@contextmanager
def operation_scope(operation_id: str | None = None) -> Iterator[str]:
    """
    Tags every log line emitted inside the block with one operation id.

    - Reuses the caller's id (e.g. an upstream request id) when given
    - Otherwise generates UUID4
    - Stored in a ContextVar so logging can retrieve it anywhere
    """
    oid = operation_id or str(uuid.uuid4())
    token = operation_id_ctx.set(oid)
    try:
        yield oid
    finally:
        operation_id_ctx.reset(token)
