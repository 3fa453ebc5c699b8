from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PayloadTruncatingFilter(logging.Filter):
    """Logging filter that shortens oversized messages.

    Event payloads are arbitrary client data; this keeps a large ``ping`` body
    from flooding the terminal while leaving normal log lines intact.
    """

    def __init__(self, limit: int = 500) -> None:
        super().__init__()
        self.limit = limit

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        if len(msg) > self.limit:
            record.msg = msg[: self.limit] + f"... [{len(msg) - self.limit} chars truncated]"
            record.args = None
        return True


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, PayloadTruncatingFilter) for f in handler.filters):
            handler.addFilter(PayloadTruncatingFilter())
