"""Logging filter that masks secrets and connection-string credentials."""

import logging

from .redaction import redact_text


class RedactionFilter(logging.Filter):
    """Redact every record before a handler formats it.

    The message is rendered once with its arguments and the rendered text
    is redacted, so a connection string carried by an exception or any
    other non-string argument is masked too. Traceback text attached with
    ``exc_info`` is redacted the same way.
    """

    # Larger messages (exports, HTML dumps) skip the regexes
    MAX_REDACTION_SIZE = 8 * 1024

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if len(message) <= self.MAX_REDACTION_SIZE:
            record.msg = redact_text(message)
            record.args = None

        if record.exc_info and not record.exc_text:
            record.exc_text = redact_text(
                logging.Formatter().formatException(record.exc_info)
            )

        return True
