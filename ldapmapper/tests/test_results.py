"""
Tests for Result and ErrorRecord.
"""

import unittest

import ldap

from ldapmapper.exceptions import NoResults, SchemaViolation, SearchError, ldap_error_text
from ldapmapper.results import ErrorRecord, Result


class TestResult(unittest.TestCase):
    """Test result values."""

    def test_success(self):
        result = Result.success([1, 2])
        self.assertTrue(result.ok)
        self.assertTrue(result)
        self.assertFalse(result.no_results)
        self.assertEqual(result.unwrap(), [1, 2])

    def test_empty_success_is_still_truthy(self):
        self.assertTrue(Result.success(0))

    def test_no_results(self):
        result = Result.failure(NoResults("No records found"), "LdapMapper.find")
        self.assertFalse(result)
        self.assertTrue(result.no_results)
        self.assertIsNone(result.value)
        with self.assertRaises(NoResults):
            result.unwrap()

    def test_directory_failure(self):
        result = Result.failure(SearchError("Search failed", "Operations error"), "LdapMapper.find")
        self.assertFalse(result.no_results)
        self.assertEqual(result.error.message, "Search failed")
        self.assertEqual(result.error.ldap_error, "Operations error")
        self.assertEqual(result.error.source, "LdapMapper.find")
        self.assertEqual(str(result.error.exception), "Search failed: Operations error")

    def test_other_failure(self):
        error = ErrorRecord.from_exception(SchemaViolation("Attribute {x} does not exist"), "LdapMapper.save")
        self.assertEqual(error.message, "Attribute {x} does not exist")
        self.assertIsNone(error.ldap_error)


class TestLdapErrorText(unittest.TestCase):
    """Test extracting messages from python-ldap exceptions."""

    def test_desc_and_info(self):
        e = ldap.OPERATIONS_ERROR({"desc": "Operations error", "info": "bad search"})
        self.assertEqual(ldap_error_text(e), "Operations error (bad search)")

    def test_desc_only(self):
        self.assertEqual(ldap_error_text(ldap.SERVER_DOWN({"desc": "Can't contact LDAP server"})), "Can't contact LDAP server")

    def test_plain_exception(self):
        self.assertEqual(ldap_error_text(ValueError("boom")), "boom")
