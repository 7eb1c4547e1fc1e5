"""
Tests for root DSE and schema detection.
"""

import unittest
from unittest.mock import MagicMock, patch

import ldap

from ldapmapper.exceptions import SchemaFetchError
from ldapmapper.schema import LdapServerSchema
from ldapmapper.sorting import SORTING_OID

ATTRIBUTE_TYPES = [
    b"( 2.5.4.3 NAME ( 'cn' 'commonName' ) SUP name )",
    b"( 0.9.2342.19200300.100.1.1 NAME 'uid' EQUALITY caseIgnoreMatch "
    b"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15 )",
    b"( 0.9.2342.19200300.100.1.3 NAME ( 'mail' 'rfc822Mailbox' ) "
    b"SYNTAX 1.3.6.1.4.1.1466.115.121.1.26 )",
]


class TestLdapServerSchema(unittest.TestCase):
    """Test LdapServerSchema with a mocked connection."""

    def setUp(self):
        LdapServerSchema.clear_cache()
        self.connection = MagicMock()

    def tearDown(self):
        LdapServerSchema.clear_cache()

    def root_dse(self, controls=(), subschema=b"cn=schema"):
        attrs = {"supportedControl": list(controls)}
        if subschema:
            attrs["subschemaSubentry"] = [subschema]
        return [("", attrs)]

    def test_sorting_supported(self):
        self.connection.search_s.return_value = self.root_dse([SORTING_OID.encode()])
        self.assertTrue(LdapServerSchema.check_server_sorting_support(self.connection, "a"))

    def test_sorting_not_supported(self):
        self.connection.search_s.return_value = self.root_dse([b"2.16.840.1.113730.3.4.9"])
        self.assertFalse(LdapServerSchema.check_server_sorting_support(self.connection, "a"))

    def test_root_dse_is_cached(self):
        self.connection.search_s.return_value = self.root_dse([SORTING_OID.encode()])
        LdapServerSchema.check_server_sorting_support(self.connection, "a")
        LdapServerSchema.check_server_sorting_support(self.connection, "a")
        self.assertEqual(self.connection.search_s.call_count, 1)
        LdapServerSchema.check_server_sorting_support(self.connection, "b")
        self.assertEqual(self.connection.search_s.call_count, 2)

    def test_root_dse_failure_falls_back(self):
        self.connection.search_s.side_effect = ldap.NO_SUCH_OBJECT({"desc": "No such object"})
        with self.assertLogs("ldapmapper.schema", level="WARNING"):
            info = LdapServerSchema.get_root_dse(self.connection, "a")
        self.assertEqual(info, {"supported_controls": set(), "subschema_dn": None})

    def test_root_dse_server_down_is_raised(self):
        self.connection.search_s.side_effect = ldap.SERVER_DOWN({"desc": "Can't contact LDAP server"})
        with self.assertRaises(ldap.SERVER_DOWN):
            LdapServerSchema.get_root_dse(self.connection, "a")

    def test_parse_attribute_types(self):
        attributes = LdapServerSchema.parse_attribute_types(ATTRIBUTE_TYPES)
        self.assertEqual(attributes["uid"], "1.3.6.1.4.1.1466.115.121.1.15")
        self.assertEqual(attributes["mail"], attributes["rfc822mailbox"])
        self.assertIn("cn", attributes)
        self.assertIn("commonname", attributes)

    def test_get_attribute_types(self):
        self.connection.search_s.side_effect = [
            self.root_dse(),
            [("cn=schema", {"attributeTypes": ATTRIBUTE_TYPES})],
        ]
        attributes = LdapServerSchema.get_attribute_types(self.connection, "a")
        self.assertIn("uid", attributes)
        self.assertEqual(self.connection.search_s.call_args_list[1].args[0], "cn=schema")
        # second call comes from the cache
        self.assertIs(LdapServerSchema.get_attribute_types(self.connection, "a"), attributes)
        self.assertEqual(self.connection.search_s.call_count, 2)

    def test_get_attribute_types_uses_fallback_schema_dn(self):
        self.connection.search_s.side_effect = [
            self.root_dse(subschema=None),
            [("cn=Subschema", {"attributeTypes": ATTRIBUTE_TYPES})],
        ]
        with patch("ldapmapper.schema.get_schema_dn", return_value="cn=Subschema"):
            LdapServerSchema.get_attribute_types(self.connection, "a")
        self.assertEqual(self.connection.search_s.call_args_list[1].args[0], "cn=Subschema")

    def test_schema_read_failure(self):
        self.connection.search_s.side_effect = [
            self.root_dse(),
            ldap.INSUFFICIENT_ACCESS({"desc": "Insufficient access"}),
        ]
        with self.assertRaises(SchemaFetchError) as cm:
            LdapServerSchema.get_attribute_types(self.connection, "a")
        self.assertEqual(cm.exception.ldap_error, "Insufficient access")

    def test_schema_without_attribute_types(self):
        self.connection.search_s.side_effect = [
            self.root_dse(),
            [("cn=schema", {"objectClasses": [b"( 2.5.6.0 NAME 'top' ABSTRACT )"]})],
        ]
        with self.assertRaises(SchemaFetchError):
            LdapServerSchema.get_attribute_types(self.connection, "a")

    def test_clear_one_server(self):
        self.connection.search_s.return_value = self.root_dse()
        LdapServerSchema.get_root_dse(self.connection, "a")
        LdapServerSchema.get_root_dse(self.connection, "b")
        LdapServerSchema.clear_cache("a")
        LdapServerSchema.get_root_dse(self.connection, "a")
        LdapServerSchema.get_root_dse(self.connection, "b")
        self.assertEqual(self.connection.search_s.call_count, 3)
