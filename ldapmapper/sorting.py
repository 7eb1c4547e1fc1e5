"""
Ordering of search results.

If the server advertises the Server-Side Sort control (RFC 2891) we ask it to
sort for us; otherwise :py:func:`sort_entries` sorts the raw entries after
they come back.
"""

from typing import Any

from ldap.controls import RequestControl
from pyasn1.codec.ber import encoder  # type: ignore[import]
from pyasn1.type import namedtype, tag, univ  # type: ignore[import]

from .typing import LDAPData

#: OID of the Server-Side Sort request control
SORTING_OID = "1.2.840.113556.1.4.473"


def _context(number: int) -> tag.Tag:
    return tag.Tag(tag.tagClassContext, tag.tagFormatSimple, number)


class _SortKey(univ.Sequence):
    # SortKey ::= SEQUENCE {
    #     attributeType  AttributeDescription,
    #     orderingRule   [0] MatchingRuleId OPTIONAL,
    #     reverseOrder   [1] BOOLEAN DEFAULT FALSE }
    # LDAP modules use IMPLICIT tagging.
    componentType = namedtype.NamedTypes(  # noqa: N815
        namedtype.NamedType("attributeType", univ.OctetString()),
        namedtype.OptionalNamedType(
            "orderingRule", univ.OctetString().subtype(implicitTag=_context(0))
        ),
        namedtype.DefaultedNamedType(
            "reverseOrder", univ.Boolean(False).subtype(implicitTag=_context(1))  # noqa: FBT003
        ),
    )


def split_order(order: str) -> tuple[str, bool]:
    """
    Split ``"-cn"`` into ``("cn", True)`` and ``"cn"`` into ``("cn", False)``.
    """
    if order.startswith("-"):
        return order[1:], True
    return order, False


class ServerSideSortControl(RequestControl):
    """
    The RFC 2891 sort request control.

    Args:
        order: an attribute name, or a list of them, ``-`` prefixed for
            descending order.  The first one is the primary sort key.

    Keyword Args:
        criticality: if ``True``, the server must fail the search rather
            than return unsorted results.

    """

    controlType = SORTING_OID  # noqa: N815

    def __init__(self, order: str | list[str], criticality: bool = False) -> None:
        # RequestControl.__init__ would reset controlType
        self.criticality = criticality
        orders = [order] if isinstance(order, str) else order
        self.sort_keys: list[tuple[str, bool]] = [split_order(o) for o in orders if o]

    def encodeControlValue(self) -> bytes:  # noqa: N802
        keys = univ.SequenceOf(componentType=_SortKey())
        for position, (attribute, descending) in enumerate(self.sort_keys):
            key = _SortKey()
            key["attributeType"] = attribute.encode("utf-8")
            if descending:
                key["reverseOrder"] = True
            keys.setComponentByPosition(position, key)
        return encoder.encode(keys)


def _sort_value(entry: LDAPData, attribute: str) -> tuple[int, Any]:
    # Entries without the attribute sort before everything else
    attribute = attribute.lower()
    for name, values in entry[1].items():
        if name.lower() == attribute and values:
            value = values[0]
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            return (1, value.lower() if isinstance(value, str) else value)
    return (0, "")


def sort_entries(entries: list[LDAPData], order: str | None) -> list[LDAPData]:
    """
    Sort raw entries by the first value of an attribute, case-insensitively.

    Args:
        entries: raw ``(dn, attrs)`` entries
        order: the attribute to sort on, ``-`` prefixed for descending order.
            If falsy, ``entries`` is returned as is.

    Returns:
        The sorted entries.

    """
    if not order:
        return entries
    attribute, descending = split_order(order)
    return sorted(
        entries, key=lambda entry: _sort_value(entry, attribute), reverse=descending
    )
