import contextvars
import logging
import sys
from configparser import RawConfigParser
from contextlib import contextmanager
from logging import Logger
from logging import config as logging_config
from typing import TYPE_CHECKING, Dict, Generator, List, Optional, Tuple, Union, cast

from dpcauth import config

if TYPE_CHECKING:
    from logging import LogRecord

# Default logging configuration
DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "dpcauth": {
            "level": "INFO",
            "handlers": ["consoleHandler"],
            "propagate": False,
        },
    },
    "handlers": {
        "consoleHandler": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "formatter_formatter",
            "stream": "ext://sys.stdout",
        }
    },
    "formatters": {
        "formatter_formatter": {
            "format": "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s %(reqidf)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
}

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id")


class RequestIDFilter(logging.Filter):
    """
    A logging filter that adds a request ID to log records.

    The request ID is read from the `request_id_var` context variable and is
    attached to each record as `reqid` and `reqidf`, so that lines logged by
    concurrent authorization requests can be told apart.
    """

    def filter(self, record: "LogRecord") -> bool:
        reqid = request_id_var.get("")

        record.reqid = reqid
        record.reqidf = f"(reqid={reqid})" if reqid else ""

        return True


def annotate_logger(logger: Logger) -> None:
    """Add a request ID filter to all handlers of the given logger."""
    for handler in logger.handlers:
        if not any(isinstance(f, RequestIDFilter) for f in handler.filters):
            handler.addFilter(RequestIDFilter())


logging_config.dictConfig(DEFAULT_LOGGING_CONFIG)
annotate_logger(logging.getLogger("dpcauth"))


def _parse_args(args_str: str) -> Tuple[str, ...]:
    """
    Parse the `args` option of a handler section.

    Only the stream names and plain values (e.g. a file name) are understood,
    nothing is evaluated.
    """
    if args_str.strip() in ("", "()"):
        return ()

    if not (args_str.startswith("(") and args_str.endswith(")")):
        raise ValueError(f"Invalid args format: {args_str}")

    return tuple(arg.strip().strip("'\"") for arg in args_str[1:-1].split(",") if arg.strip())


def _build_handler(handler_class: str, args: Tuple[str, ...]) -> logging.Handler:
    if "StreamHandler" in handler_class:
        stream = sys.stderr if args and args[0] == "sys.stderr" else sys.stdout
        return logging.StreamHandler(stream=stream)
    if "FileHandler" in handler_class:
        if not args:
            raise ValueError("FileHandler requires a file name")
        return logging.FileHandler(filename=args[0])
    raise ValueError(f"Unsupported handler class: {handler_class}")


def _configure_logging_from_raw(raw_config: RawConfigParser) -> None:
    """
    Configure logging from the formatter_*, handler_* and logger_* sections of
    a RawConfigParser object.
    """
    formatters = {}
    for section in raw_config.sections():
        if section.startswith("formatter_"):
            options = dict(raw_config.items(section))
            formatters[section.split("_", 1)[1]] = logging.Formatter(
                options.get("format", "%(message)s"), options.get("datefmt", None)
            )

    handlers = {}
    for section in raw_config.sections():
        if section.startswith("handler_"):
            options = dict(raw_config.items(section))
            handler = _build_handler(
                options.get("class", "logging.StreamHandler"), _parse_args(options.get("args", "()"))
            )
            handler.setLevel(options.get("level", "NOTSET").upper())
            formatter_name = options.get("formatter", "")
            if formatter_name in formatters:
                handler.setFormatter(formatters[formatter_name])
            handler.addFilter(RequestIDFilter())
            handlers[section.split("_", 1)[1]] = handler

    replaced: List[logging.Handler] = []
    for section in raw_config.sections():
        if not section.startswith("logger_"):
            continue

        options = dict(raw_config.items(section))
        logger_name = section.split("_", 1)[1]
        logger = logging.getLogger() if logger_name == "root" else logging.getLogger(logger_name)
        logger.setLevel(options.get("level", "NOTSET").upper())
        if logger_name != "root":
            logger.propagate = options.get("propagate", "1") == "1"

        replaced.extend(logger.handlers)
        logger.handlers = []
        for name in (n.strip() for n in options.get("handlers", "").split(",") if n.strip()):
            if name in handlers:
                logger.addHandler(handlers[name])

    # Close what was replaced, unless another logger still writes to it
    in_use = {id(h) for h in _all_loggers_handlers()}
    for handler in replaced:
        if id(handler) not in in_use:
            handler.close()


def _all_loggers_handlers() -> List[logging.Handler]:
    loggers = [logging.getLogger()] + [
        logger for logger in logging.Logger.manager.loggerDict.values() if isinstance(logger, logging.Logger)
    ]
    return [handler for logger in loggers for handler in logger.handlers]


@contextmanager
def _safe_logging_configuration() -> Generator[None, None, None]:
    """
    Apply a logging configuration, restoring every logger (root included) to
    its previous handlers, level and propagation if anything goes wrong.
    """
    saved: Dict[str, Dict[str, Union[List[logging.Handler], int, bool]]] = {
        name: {"handlers": list(logger.handlers), "level": logger.level, "propagate": logger.propagate}
        for name, logger in logging.Logger.manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }
    root_logger = logging.getLogger()
    root_handlers = list(root_logger.handlers)
    root_level = root_logger.level

    try:
        yield
    except Exception:
        for name, state in saved.items():
            logger = logging.getLogger(name)
            logger.handlers = cast(List[logging.Handler], state["handlers"])
            logger.setLevel(cast(int, state["level"]))
            logger.propagate = cast(bool, state["propagate"])
        root_logger.handlers = root_handlers
        root_logger.setLevel(root_level)
        raise


def _safe_get_config() -> Optional[RawConfigParser]:
    try:
        return config.get_config("logging")
    except Exception:
        return None


def init_logging(loggername: str) -> Logger:
    """
    Initializes the logging system for a specific logger.

    Args:
        loggername (str): The name of the logger, below the `dpcauth` namespace.

    Returns:
        Logger: The initialized logger instance.
    """
    logger = logging.getLogger(f"dpcauth.{loggername}")

    logging_conf = _safe_get_config()
    if logging_conf and logging_conf.sections():
        try:
            with _safe_logging_configuration():
                _configure_logging_from_raw(logging_conf)
        except Exception as e:
            logger.error("Logging configuration error: %s", e)

    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    annotate_logger(logging.getLogger())

    return logger
