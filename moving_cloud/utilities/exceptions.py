"""Exceptions raised while setting up the moving cloud problem."""
import warnings

from tqdm.auto import tqdm


class MovingCloudError(Exception):
    """Base exception class for moving cloud setup errors."""

    pass


class MissingParameterError(MovingCloudError, KeyError):
    """Raised when a required configuration key is absent."""

    def __init__(self, block: str, name: str):
        self.block = block
        self.name = name
        super().__init__(f"{block}/{name}")

    def __str__(self):
        return f"Required parameter '{self.name}' was not found in block <{self.block}>."


class ConfigurationError(MovingCloudError, ValueError):
    """Raised when the inputs violate an invariant of the problem setup."""

    pass


class BufferOwnershipError(MovingCloudError):
    """Raised when a staging buffer is transferred twice or into a foreign field."""

    pass


class tqdmWarningRedirector:
    """
    A context manager to redirect all warnings and log them through tqdm.write()
    so that they don't interfere with the progress bar.
    """

    def __enter__(self):
        # Backup the original warnings.showwarning
        self._original_showwarning = warnings.showwarning

        # Override the warning display to use tqdm.write
        warnings.showwarning = self._tqdm_warning_handler
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        # Restore the original warning display function
        warnings.showwarning = self._original_showwarning

    @staticmethod
    def _tqdm_warning_handler(
        message, category, filename, lineno, file=None, line=None
    ):
        """
        Custom handler to redirect warnings through tqdm.write().
        """
        tqdm.write(f"WARNING: {message}, in {filename}, line {lineno}")
