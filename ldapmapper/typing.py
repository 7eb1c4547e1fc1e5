"""
LDAP mapper type definitions.

Type aliases for the raw python-ldap data structures and the normalized
records produced from them.
"""

from typing import Any

ModifyModListEntry = tuple[int, str, list[bytes] | None]
ModifyModList = list[ModifyModListEntry]
AddModlist = list[tuple[str, list[bytes]]]
LDAPData = tuple[str, dict[str, list[bytes]]]
Record = dict[str, Any]
ShapedRecord = dict[str, Any]
