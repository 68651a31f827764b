"""Progress and error reporting through caller-supplied sinks."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .exceptions import format_error_for_logging, innermost_message

log = logging.getLogger(__name__)

Sink = Callable[[str], None]


class Reporter:
    """Routes progress messages to an info sink and failures to an error sink.

    Without an info sink, progress messages are printed to stdout and logged
    at INFO. When a sink is set the module logger only gets a DEBUG copy.
    Error sinks receive the message of the innermost exception.
    """

    def __init__(
        self,
        log_info: Optional[Sink] = None,
        log_error: Optional[Sink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._log_info = log_info
        self._log_error = log_error
        self.logger = logger or log

    def info(self, msg: str, *args: object) -> None:
        text = msg % args if args else msg
        if self._log_info is None:
            self.logger.info(text)
            print(text)
        else:
            self.logger.debug(text)
            self._log_info(text)

    def error(self, error: Union[BaseException, str]) -> None:
        if isinstance(error, BaseException):
            text = innermost_message(error)
            self.logger.debug(
                "Failure details: %s", format_error_for_logging(error), exc_info=error
            )
        else:
            text = error

        if self._log_error is None:
            self.logger.error("❌ %s", text)
        else:
            self.logger.debug("❌ %s", text)
            self._log_error(text)
