"""
Attribute selection for LDAP searches.
"""

from collections.abc import Iterable


def split_fields(fields: Iterable[str] | str | None) -> list[str]:
    """
    Accept either a list of attribute names or a single comma separated
    string of them, and return a list with each name trimmed.
    """
    if not fields:
        return []
    if isinstance(fields, str):
        return [name.strip() for name in fields.split(",") if name.strip()]
    return [name.strip() for name in fields]


def select_fields(
    requested: Iterable[str] | str | None, defaults: Iterable[str]
) -> list[str]:
    """
    Merge the caller's attribute names with the always-included attributes.

    Order is preserved and duplicates are kept; LDAP servers ignore repeated
    attribute names in a search request.

    Args:
        requested: attribute names, as a list or a comma separated string
        defaults: attributes to append to every selection

    Returns:
        ``requested`` followed by ``defaults``.

    """
    return split_fields(requested) + list(defaults)


def attribute_list(fields: list[str]) -> list[str] | None:
    """
    Convert a field selection into a python-ldap ``attrlist``.

    An empty selection becomes ``None``, which asks the server for all user
    attributes.  Anything else goes through unchanged so that operational
    attributes named alongside ``*`` are still returned.
    """
    if not fields:
        return None
    return list(fields)
