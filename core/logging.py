"""
core/logging.py -- Logging setup and the per-operation logger adapter.

Everything logs through the stdlib logging module under the "sso." namespace.
Entry points (api/main.py, main.py) call setup_logging() once; library code
only ever calls logging.getLogger().

OpLogger binds an operation name and the identifiers relevant to one call
(email, user_id, app_id) and appends them to every message as key=value
pairs. A fresh adapter is built per call, so no logger state is shared
between concurrent requests.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
from typing import Any

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Safe to call more than once."""
    logging.basicConfig(level=level.upper(), format=_FORMAT, datefmt=_DATEFMT)


class OpLogger(logging.LoggerAdapter):
    """LoggerAdapter that suffixes each message with its bound context.

    Usage:
        log = OpLogger(logger, op="auth.login", email=email)
        log.info("attempting to login user")
        # -> "attempting to login user op=auth.login email=alice@example.com"

    Extra fields passed per call (log.warning("...", extra={"error": err}))
    are appended after the bound ones.
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        fields = dict(self.extra)
        fields.update(kwargs.pop("extra", None) or {})
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        return (f"{msg} {suffix}" if suffix else msg), kwargs

