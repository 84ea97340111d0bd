#
# src/lode/exceptions.py
#
"""
Exception hierarchy for lode.

Nothing raised from here is fatal to the host application: the tree degrades
to a visible error state, and the CLI maps these to exit codes.
"""


class LodeError(Exception):
    """Base class for all lode specific errors."""


class ConfigurationError(LodeError):
    """Raised when the configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        full_message = message
        if path:
            full_message += f" (File: '{path}')"
        super().__init__(full_message)


class EntityNotFoundError(LodeError):
    """
    A requested node does not exist in the current tree.

    Usually a stale reference held by the UI after a refresh; the caller is
    expected to fetch the current tree again rather than retry the same path.
    """

    def __init__(self, identifiers: tuple[str, ...] | list[str], framework_id: str | None = None):
        self.identifiers = tuple(identifiers)
        self.framework_id = framework_id
        message = f"Unable to find requested entity {'/'.join(self.identifiers) or '<root>'}"
        if framework_id:
            message += f" in framework '{framework_id}'"
        super().__init__(message)


class RunnerError(LodeError):
    """A test-runner process failed before producing results (crash, unreachable host...)."""

    def __init__(
        self,
        message: str,
        suite_id: str | None = None,
        exit_code: int | None = None,
        details: Exception | None = None,
    ):
        self.suite_id = suite_id
        self.exit_code = exit_code
        self.details = details
        full_message = f"[Runner] {message}"
        if suite_id:
            full_message += f" (Suite: '{suite_id}')"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class SnapshotError(LodeError):
    """A persisted snapshot could not be read or written."""


# 🔼⚙️
