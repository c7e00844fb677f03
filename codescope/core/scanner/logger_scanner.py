"""Logging call-site extraction.

A call is a logging statement when its method is a level name and its
receiver expression mentions ``log`` or ``logger`` (``log``, ``LOGGER``,
``this.logger``, ``LoggerFactory.getLogger(X.class)``). Risk flags are left
False here; the risk classifier sets them.
"""

import logging
from typing import Iterable, List

from ..ast_parser.java_parser import JavaParser
from ..ast_parser.models import LogCall, ParseResult
from .models import LogStatementRecord

logger = logging.getLogger(__name__)

LOG_METHODS = frozenset({"trace", "debug", "info", "warn", "warning", "error", "fatal"})
LOGGER_IDENTIFIERS = ("log", "logger")

_LEVEL_ALIASES = {"WARNING": "WARN"}


def is_logger_call(call: LogCall) -> bool:
    if call.method.lower() not in LOG_METHODS:
        return False
    receiver = call.receiver.lower()
    return any(identifier in receiver for identifier in LOGGER_IDENTIFIERS)


def log_level(method: str) -> str:
    level = method.upper()
    return _LEVEL_ALIASES.get(level, level)


class LoggerScanner:
    """Collects LogStatementRecords from parsed Java files."""

    def scan(self, parsed: Iterable[ParseResult]) -> List[LogStatementRecord]:
        records: List[LogStatementRecord] = []
        for result in parsed:
            for decl in result.types:
                for call in decl.calls:
                    if not is_logger_call(call):
                        continue
                    message = JavaParser.literal_value(call.arguments[0]) if call.arguments else ""
                    records.append(LogStatementRecord(
                        class_name=decl.qualified_name,
                        file_path=result.file_path,
                        log_level=log_level(call.method),
                        line_number=call.line if call.line > 0 else None,
                        message_template=message,
                        variables=list(call.arguments[1:]),
                    ))
        logger.debug(f"Found {len(records)} log statements")
        return records
