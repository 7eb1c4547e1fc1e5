"""
Exceptions raised and recorded by the LDAP mapper.

Compilation problems (an unknown query type, a malformed DN) are raised
straight away.  Directory failures are wrapped in one of the I/O errors below
and returned to the caller inside a :py:class:`~ldapmapper.results.Result`.
"""

from typing import Any


class LdapMapperError(Exception):
    """Base class for every error raised by this package."""


class InvalidQueryType(LdapMapperError):
    """Raised when ``find()`` is asked for a type other than first, all, count or list."""


class MalformedDnError(LdapMapperError, ValueError):
    """Raised when a DN component has no ``=`` separator."""


class NoResults(LdapMapperError):
    """Signals that a search matched nothing.  Not a hard failure."""


class DirectoryError(LdapMapperError):
    """
    Base class for failures reported by the directory client.

    Args:
        message: What we were trying to do.

    Keyword Args:
        ldap_error: The error text reported by the directory server.

    """

    def __init__(self, message: str, ldap_error: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.ldap_error = ldap_error

    def __str__(self) -> str:
        if self.ldap_error:
            return f"{self.message}: {self.ldap_error}"
        return self.message


class DirectoryConnectionError(DirectoryError):
    """We could not reach or bind to the directory server."""


class SearchError(DirectoryError):
    """A subtree search failed."""


class ReadError(DirectoryError):
    """A by-DN read failed."""


class WriteError(DirectoryError):
    """An add, modify or delete failed."""


class SchemaFetchError(DirectoryError):
    """The subschema entry could not be read.  Degrades strict write validation."""


class SchemaViolation(LdapMapperError):
    """A strict-mode write named an attribute the schema does not define."""


def ldap_error_text(exc: Exception) -> str:
    """
    Extract a readable message from a python-ldap exception.

    python-ldap puts a dict with ``desc`` and (sometimes) ``info`` keys into
    ``exc.args[0]``.  Anything else is just stringified.

    Args:
        exc: the exception raised by python-ldap

    Returns:
        The error text.

    """
    if exc.args and isinstance(exc.args[0], dict):
        details: dict[str, Any] = exc.args[0]
        desc = details.get("desc", "")
        info = details.get("info", "")
        if isinstance(info, bytes):
            info = info.decode("utf-8", errors="replace")
        if desc and info:
            return f"{desc} ({info})"
        return str(desc or info or exc.__class__.__name__)
    return str(exc) or exc.__class__.__name__
