"""Observability for query compilation: a JSONL compile event log."""

from .compile_log import CompileLog

__all__ = [
    "CompileLog",
]
