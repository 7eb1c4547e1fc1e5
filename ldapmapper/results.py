"""
Explicit result values for mapper operations.

Every operation that talks to the directory returns a :py:class:`Result`
instead of raising, so callers can tell "no matches" apart from "the search
failed" without consulting shared state.
"""

from dataclasses import dataclass
from typing import Any

from .exceptions import DirectoryError, LdapMapperError, NoResults


@dataclass(frozen=True)
class ErrorRecord:
    """
    What went wrong, and where.

    Args:
        message: A human readable description of the failure.
        source: The mapper operation that recorded the failure, e.g.
            ``LdapMapper.find``.
        ldap_error: The error text reported by the directory, if any.
        exception: The exception that describes the failure.

    """

    message: str
    source: str
    ldap_error: str | None = None
    exception: LdapMapperError | None = None

    @classmethod
    def from_exception(cls, exc: LdapMapperError, source: str) -> "ErrorRecord":
        ldap_error = exc.ldap_error if isinstance(exc, DirectoryError) else None
        message = exc.message if isinstance(exc, DirectoryError) else str(exc)
        return cls(message=message, source=source, ldap_error=ldap_error, exception=exc)


@dataclass(frozen=True)
class Result:
    """
    The outcome of a mapper operation.

    ``bool(result)`` is ``True`` only when the operation succeeded.

    Args:
        value: The operation's return value.  ``None`` on failure.
        error: The failure, if there was one.

    """

    value: Any = None
    error: ErrorRecord | None = None

    @classmethod
    def success(cls, value: Any) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: LdapMapperError, source: str) -> "Result":
        return cls(error=ErrorRecord.from_exception(exc, source))

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def no_results(self) -> bool:
        """
        ``True`` if the operation failed only because nothing matched.
        """
        return self.error is not None and isinstance(self.error.exception, NoResults)

    def unwrap(self) -> Any:
        """
        Return :py:attr:`value`, or raise the recorded exception.

        Raises:
            LdapMapperError: whatever caused the operation to fail.

        """
        if self.error is not None:
            if self.error.exception is not None:
                raise self.error.exception
            raise LdapMapperError(self.error.message)
        return self.value

    def __bool__(self) -> bool:
        return self.ok
