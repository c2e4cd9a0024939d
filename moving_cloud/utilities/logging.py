"""Logging utilities for the ``moving_cloud`` package."""
import logging
import sys
from abc import ABC, abstractmethod

from moving_cloud.utilities.config import mcparams

# Setting up the logging system
streams = dict(
    mylog=getattr(sys, mcparams["logging", "mylog", "stream"]),
    devlog=getattr(sys, mcparams["logging", "devlog", "stream"]),
)
_loggers = dict(
    mylog=logging.Logger("moving_cloud"), devlog=logging.Logger("mc-development")
)

_handlers = {}

for k, v in _loggers.items():
    # Construct the formatter string.
    _handlers[k] = logging.StreamHandler(streams[k])
    _handlers[k].setFormatter(logging.Formatter(mcparams["logging", k, "format"]))
    v.addHandler(_handlers[k])
    v.setLevel(mcparams["logging", k, "level"])
    v.propagate = False
    v.disabled = not mcparams["logging", k, "enabled"]

mylog: logging.Logger = _loggers["mylog"]
""":py:class:`logging.Logger`: The main logger for ``moving_cloud``."""
devlog: logging.Logger = _loggers["devlog"]
""":py:class:`logging.Logger`: The development logger for ``moving_cloud``."""


class LogDescriptor(ABC):
    LOG_CLASS = logging.Logger  # Default to the standard Logger; can be overridden in subclasses

    def __get__(self, instance, owner) -> LOG_CLASS:
        if not hasattr(owner, "_logger") or owner._logger is None:
            # Fetch the logger default and then set the logger class to
            # the one specified by the descriptor class.
            original_logger_class = logging.getLoggerClass()
            logging.setLoggerClass(self.LOG_CLASS)

            try:
                # Get the logger as an instance of LOGCLASS
                owner._logger = logging.getLogger(owner.__name__)
                self.configure_logger(owner._logger)
            finally:
                # Restore the original logging class
                logging.setLoggerClass(original_logger_class)

        return owner._logger

    @abstractmethod
    def configure_logger(self, logger):
        pass


class ComponentLogDescriptor(LogDescriptor):
    """Per-class logger configured like ``devlog`` (off unless development logging is enabled)."""

    def configure_logger(self, logger):
        _handler = logging.StreamHandler(streams["devlog"])
        _handler.setFormatter(logging.Formatter(mcparams["logging", "devlog", "format"]))
        if len(logger.handlers) == 0:
            logger.addHandler(_handler)

        logger.setLevel(mcparams["logging", "devlog", "level"])
        logger.propagate = False
        logger.disabled = not mcparams["logging", "devlog", "enabled"]
