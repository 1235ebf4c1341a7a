"""
Logging setup for the bot process.

Every module logs through stdlib ``logging``; records are rendered by
structlog as JSON lines in production and as console output elsewhere.
Card data never reaches a log line: numbers are masked and CVCs dropped.
"""

import logging
import sys
from typing import Any, Optional

import structlog

from .config import settings

SENSITIVE_CARD_KEYS = frozenset({"cardnumber", "card_number", "number"})
DROPPED_CARD_KEYS = frozenset({"cvc", "cardcvc", "card_cvc"})


def mask_card_number(number: Optional[str]) -> str:
    """Render a card number as its last four digits only."""
    digits = "".join(ch for ch in (number or "") if ch.isdigit())
    if len(digits) < 4:
        return "****"
    return f"**** {digits[-4:]}"


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            lowered = str(key).lower()
            if lowered in DROPPED_CARD_KEYS:
                cleaned[key] = "***"
            elif lowered in SENSITIVE_CARD_KEYS and isinstance(item, str):
                cleaned[key] = mask_card_number(item)
            else:
                cleaned[key] = _scrub(item)
        return cleaned
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def redact_card_data(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking card fields in structured log context."""
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        event_dict[key] = _scrub({key: value})[key]
    return event_dict


def setup_logging(log_level: Optional[str] = None) -> None:
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        redact_card_data,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.is_production:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # HTTP stack request logs
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
