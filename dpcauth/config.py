import logging
import os
import os.path
from configparser import RawConfigParser
from typing import Dict, Optional

from dpcauth.exception import ConfigurationError

base_logger = logging.getLogger("dpcauth.config")

# Per-call timeout, in seconds, used when none is configured
DEFAULT_TIMEOUT = 60.0

# Possible paths for base configuration files
CONFIG_FILES = {
    "client": ["/etc/dpcauth/client.conf", "/usr/etc/dpcauth/client.conf"],
    "logging": ["/etc/dpcauth/logging.conf", "/usr/etc/dpcauth/logging.conf"],
}

# Paths to directories in which options can be overriden using configuration
# snippets
CONFIG_SNIPPETS_DIRS = {
    "client": ["/usr/etc/dpcauth/client.conf.d", "/etc/dpcauth/client.conf.d"],
    "logging": ["/usr/etc/dpcauth/logging.conf.d", "/etc/dpcauth/logging.conf.d"],
}

CONFIG_ENV = {
    "client": os.environ.get("DPCAUTH_CLIENT_CONFIG", ""),
    "logging": os.environ.get("DPCAUTH_LOGGING_CONFIG", ""),
}

# Single instance
_config: Optional[Dict[str, RawConfigParser]] = None


def _read_snippets(component: str, parser: RawConfigParser) -> None:
    for d in (x for x in CONFIG_SNIPPETS_DIRS.get(component, []) if os.path.isdir(x)):
        snippets = sorted(os.path.join(d, f) for f in os.listdir(d) if os.path.isfile(os.path.join(d, f)))
        applied = parser.read(snippets)
        for snippet in snippets:
            if os.access(snippet, os.R_OK) and snippet not in applied:
                base_logger.error("Configuration snippet %s exists but could not be parsed", snippet)
        if applied:
            base_logger.info("Applied configuration snippets from %s", d)


def get_config(component: str) -> RawConfigParser:
    """Find the configuration file to use for the given component and apply the
    overrides defined by configuration snippets.

    If a configuration file path is set through a DPCAUTH_*_CONFIG environment
    variable, that file is the only one read for the component. Otherwise the
    first existing file from CONFIG_FILES is used as the base configuration
    and the snippets found in the matching CONFIG_SNIPPETS_DIRS entries are
    applied on top of it, in lexical order.

    A component without any configuration file yields an empty parser, so
    every accessor falls back to its default.
    """

    global _config

    if not _config:
        _config = {}

    if not component:
        raise ConfigurationError("No component provided to get_config")

    if component in _config:
        return _config[component]

    if component not in CONFIG_FILES:
        raise ConfigurationError(component=component)

    # Use RawConfigParser, so we can also use it as the logging config
    parser = RawConfigParser()

    env_file = CONFIG_ENV.get(component, "")
    if env_file:
        if os.path.isfile(env_file):
            base_logger.info("Reading configuration from %s", parser.read(env_file))
            _config[component] = parser
            return parser

        base_logger.info(
            "Configuration file %s for %s set through environment variable not found, falling back to installed configuration",
            env_file,
            component,
        )

    for c in CONFIG_FILES[component]:
        config_file = parser.read(c)
        if config_file:
            base_logger.info("Reading configuration from %s", config_file)
            _read_snippets(component, parser)
            break
    else:
        base_logger.debug("No configuration file found for component %s in %s", component, CONFIG_FILES[component])

    _config[component] = parser
    return parser


def reset() -> None:
    """Drop every cached configuration so the next access reads files again"""
    global _config
    _config = None


def _get_env(component: str, option: str, section: Optional[str]) -> Optional[str]:
    opt_section = f"_{section.upper()}" if section else ""
    env_name = f"DPCAUTH_{component.upper()}{opt_section}_{option.upper()}"
    env_value = os.environ.get(env_name, None)
    if env_value is not None:
        log_msg = f'option "{option}" on section {section} for component {component}.conf was overriden by environment variable {env_name}'
        base_logger.info(log_msg.replace("on section None ", ""))

    return env_value


def get(component: str, option: str, section: Optional[str] = None, fallback: str = "") -> str:
    env_value = _get_env(component, option, section)
    if not section:
        section = component

    if env_value is not None:
        return env_value.strip('" ')

    return get_config(component).get(section, option, fallback=fallback).strip('" ')


def getint(component: str, option: str, section: Optional[str] = None, fallback: int = -1) -> int:
    env_value = _get_env(component, option, section)
    if not section:
        section = component

    try:
        if env_value is not None:
            return int(env_value)

        return get_config(component).getint(section, option, fallback=fallback)
    except ValueError as e:
        raise ConfigurationError(f"Option '{option}' of component '{component}' is not an integer") from e


def getfloat(component: str, option: str, section: Optional[str] = None, fallback: float = -1.0) -> float:
    env_value = _get_env(component, option, section)
    if not section:
        section = component

    try:
        if env_value is not None:
            return float(env_value)

        return get_config(component).getfloat(section, option, fallback=fallback)
    except ValueError as e:
        raise ConfigurationError(f"Option '{option}' of component '{component}' is not a number") from e
