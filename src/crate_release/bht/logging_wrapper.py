"""Bridge from py_trees.logging.Logger to Python's logging.Logger."""

import logging

import py_trees.logging


class PyTreesLoggerWrapper(py_trees.logging.Logger):
    """py_trees compatible logger delegating to a standard logging.Logger.

    Behaviours get py_trees' logger interface while records flow through the
    regular logging setup (Rich handler, secret masking).

    Example:
        >>> wrapped = PyTreesLoggerWrapper(logging.getLogger("build.Run Command"))
        >>> wrapped.info("[green]Finished[/green]")
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__()
        self._logger = logger

    @property
    def std_logger(self) -> logging.Logger:
        return self._logger

    def debug(self, msg: str) -> None:
        self._logger.debug(msg)

    def info(self, msg: str) -> None:
        self._logger.info(msg)

    def warning(self, msg: str) -> None:
        self._logger.warning(msg)

    def error(self, msg: str) -> None:
        self._logger.error(msg)

    def exception(self, msg: str) -> None:
        """Log an error with the current exception's traceback."""
        self._logger.error(msg, exc_info=True)
