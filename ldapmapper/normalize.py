"""
Flatten raw python-ldap search results into plain records.

python-ldap hands back each entry as ``(dn, {attribute: [bytes, ...]})``.  The
length of each value list is the attribute's value count: attributes with a
single value collapse to that value, attributes with several stay lists.
"""

from collections.abc import Iterable
from typing import Any

from .exceptions import NoResults
from .typing import LDAPData, Record, ShapedRecord


def decode(value: Any) -> Any:
    """
    Decode a raw attribute value as UTF-8, leaving binary values alone.
    """
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value
    return value


def title_label(label: str) -> str:
    """
    Capitalize the first letter of each word of ``label``, leaving the rest
    of each word alone: ``"organizationalUnit"`` becomes
    ``"OrganizationalUnit"``.
    """
    return " ".join(word[:1].upper() + word[1:] for word in label.split(" "))


def is_entry(obj: Any) -> bool:
    """
    Return ``True`` for real search entries.  Active Directory appends search
    references whose payload is a list of URLs rather than an attribute dict.
    """
    return (
        isinstance(obj, tuple | list) and len(obj) == 2 and isinstance(obj[1], dict)  # noqa: PLR2004
    )


def normalize_entry(entry: LDAPData) -> Record:
    """
    Flatten one raw entry.

    Attribute names are lower-cased since LDAP attribute names are case
    insensitive.  The entry's DN is stored under ``dn``.

    Args:
        entry: a ``(dn, attrs)`` tuple from python-ldap

    Returns:
        A dict of attribute name to a scalar or a list of values.

    """
    dn, attrs = entry
    record: Record = {}
    for name, values in attrs.items():
        if name.lower() == "dn":
            continue
        if not isinstance(values, list | tuple):
            record[name.lower()] = decode(values)
            continue
        if len(values) == 0:
            continue
        if len(values) == 1:
            record[name.lower()] = decode(values[0])
        else:
            record[name.lower()] = [decode(v) for v in values]
    record["dn"] = dn
    return record


def normalize(raw: Iterable[Any], label: str) -> list[ShapedRecord]:
    """
    Flatten a list of raw entries, wrapping each record under the title-cased
    ``label``::

        [{"Person": {"uid": "jdoe", "cn": "John Doe", "dn": "uid=jdoe,..."}}]

    Args:
        raw: the raw search result
        label: names what was searched for, usually the first component of
            the search base

    Raises:
        NoResults: ``raw`` contained no entries

    Returns:
        A list of labelled records, in the order the entries came back.

    """
    key = title_label(label)
    out = [{key: normalize_entry(obj)} for obj in raw if is_entry(obj)]
    if not out:
        msg = "No records found"
        raise NoResults(msg)
    return out
