import logging
import sys
from enum import Enum
from pathlib import PurePath

import structlog

from modresolve.core.entities import DirectoryEntity, DirectoryGroup, FileEntity, NameEntity
from modresolve.core.qualified_name import QualifiedName

# -v / -vv on the command line.
LOG_LEVELS_BY_VERBOSITY = {0: "warning", 1: "info", 2: "debug"}

_RENDERED_AS_TEXT = (PurePath, QualifiedName, FileEntity, DirectoryEntity, DirectoryGroup, NameEntity)


def level_for_verbosity(verbosity: int) -> str:
    return LOG_LEVELS_BY_VERBOSITY.get(min(max(verbosity, 0), 2), "warning")


def render_resolution_values(logger, method_name, event_dict):
    # entities, names and paths are logged in their display form.
    for key, value in event_dict.items():
        if isinstance(value, _RENDERED_AS_TEXT):
            event_dict[key] = str(value)
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def configure_logging(log_level_str: str = "warning", force_json_logs: bool = False):
    # structlog over stdlib logging on the "modresolve" logger; console or json rendering.
    log_level = getattr(logging, log_level_str.upper(), logging.WARNING)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        render_resolution_values,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=shared_processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if force_json_logs:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[structlog.stdlib.add_log_level],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    app_logger = logging.getLogger("modresolve")
    app_logger.handlers.clear()
    app_logger.addHandler(handler)
    app_logger.setLevel(log_level)

    structlog.get_logger(__name__).info("logging_configured", level=log_level_str, json=force_json_logs)
