"""
Exceptions raised by the tracked package.

The tracking core itself has no recoverable error states; these cover misuse of
the facades and of declared derived fields.
"""


class TrackedError(Exception):
    """Base class for all tracked errors."""

    pass


class ReadOnlyStateError(TrackedError, TypeError):
    """Raised when code tries to write through a tracking facade."""

    pass


class DerivedFieldError(TrackedError, KeyError):
    """Raised when a compute function returns a field that is not declared derived."""

    def __init__(self, fields, declared):
        self.fields = tuple(sorted(fields))
        self.declared = tuple(sorted(declared))
        super().__init__(
            f"compute returned undeclared field(s) {list(self.fields)}; "
            f"declared derived fields are {list(self.declared)}"
        )

    def __str__(self) -> str:
        return self.args[0]
