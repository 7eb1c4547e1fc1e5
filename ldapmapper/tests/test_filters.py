"""
Tests for compiling query conditions into LDAP filter strings.
"""

import unittest

from ldapmapper.filters import (
    AND,
    MATCH_ALL,
    OR,
    balance,
    compile_filter,
    compile_mapping,
    compile_text,
    equality_filter,
    is_balanced,
)


class TestBalance(unittest.TestCase):
    """Test parenthesis balancing of single terms."""

    def test_balanced_text_is_untouched(self):
        self.assertTrue(is_balanced("cn=Smith (Jr)"))
        self.assertEqual(balance("cn=Smith (Jr)"), "cn=Smith (Jr)")

    def test_unbalanced_text_is_escaped(self):
        self.assertFalse(is_balanced("cn=Smith (Jr"))
        self.assertEqual(balance("cn=Smith (Jr"), r"cn=Smith \28Jr")

    def test_close_before_open_is_unbalanced(self):
        self.assertFalse(is_balanced("cn=)x("))
        self.assertEqual(balance("cn=)x("), r"cn=\29x\28")

    def test_text_without_parentheses(self):
        self.assertTrue(is_balanced("uid=jdoe"))
        self.assertEqual(balance("uid=jdoe"), "uid=jdoe")


class TestCompileMapping(unittest.TestCase):
    """Test compiling attribute/value mappings."""

    def test_single_term_is_not_wrapped(self):
        self.assertEqual(compile_mapping({"cn": "Babs Jensen"}), "(cn=Babs Jensen)")
        self.assertEqual(
            compile_mapping({"cn": "Babs Jensen"}, combine=AND), "(cn=Babs Jensen)"
        )

    def test_or_is_the_default(self):
        self.assertEqual(compile_mapping({"cn": "a", "sn": "b"}), "(|(cn=a)(sn=b))")

    def test_and(self):
        self.assertEqual(
            compile_mapping({"cn": "a", "sn": "b", "uid": "c"}, combine=AND),
            "(&(cn=a)(sn=b)(uid=c))",
        )

    def test_wildcards_pass_through(self):
        self.assertEqual(compile_mapping({"cn": "Ba*"}), "(cn=Ba*)")

    def test_unbalanced_value_is_escaped(self):
        self.assertEqual(
            compile_mapping({"cn": "Smith (Jr", "sn": "x"}, combine=AND),
            r"(&(cn=Smith \28Jr)(sn=x))",
        )

    def test_empty_mapping_matches_everything(self):
        self.assertEqual(compile_mapping({}), MATCH_ALL)


class TestCompileText(unittest.TestCase):
    """Test compiling free-text conditions."""

    def test_single_clause(self):
        self.assertEqual(compile_text("uid=jdoe"), "(uid=jdoe)")

    def test_and(self):
        self.assertEqual(
            compile_text("cn=green AND gidNumber=3242442"),
            "(&(cn=green)(gidNumber=3242442))",
        )

    def test_or(self):
        self.assertEqual(compile_text("uid=a OR uid=b OR uid=c"), "(|(uid=a)(uid=b)(uid=c))")

    def test_or_split_wins_when_both_are_present(self):
        self.assertEqual(
            compile_text("a=1 AND b=2 OR c=3"), "(|(a=1 AND b=2)(c=3))"
        )

    def test_lower_case_operators_are_not_operators(self):
        self.assertEqual(compile_text("cn=this and that"), "(cn=this and that)")

    def test_unbalanced_clause_is_escaped(self):
        self.assertEqual(
            compile_text("cn=x) AND sn=y"), r"(&(cn=x\29)(sn=y))"
        )


class TestCompileFilter(unittest.TestCase):
    """Test the compile_filter entry point."""

    def test_empty_conditions_match_everything(self):
        self.assertEqual(MATCH_ALL, "(objectClass=*)")
        self.assertEqual(compile_filter({}), MATCH_ALL)
        self.assertEqual(compile_filter(""), MATCH_ALL)
        self.assertEqual(compile_filter(None), MATCH_ALL)

    def test_mapping_and_text_agree(self):
        self.assertEqual(
            compile_filter({"uid": "jdoe", "objectClass": "person"}, combine=AND),
            compile_filter("uid=jdoe AND objectClass=person"),
        )

    def test_combine_is_ignored_for_text(self):
        self.assertEqual(compile_filter("uid=a OR uid=b", combine=AND), "(|(uid=a)(uid=b))")

    def test_invalid_combine(self):
        with self.assertRaises(ValueError):
            compile_filter({"cn": "a"}, combine="xor")

    def test_invalid_conditions_type(self):
        with self.assertRaises(TypeError):
            compile_filter(42)

    def test_result_is_always_balanced(self):
        for expr in (
            {"cn": "((("},
            {"cn": ")", "sn": "("},
            "cn=( OR sn=)",
            "cn=a) AND sn=(b",
            "description=(x)",
        ):
            with self.subTest(expr=expr):
                self.assertTrue(is_balanced(compile_filter(expr)))

    def test_or_constant(self):
        self.assertEqual(OR, "or")
        self.assertEqual(AND, "and")


class TestEqualityFilter(unittest.TestCase):
    """Test escaped single-term filters."""

    def test_plain_value(self):
        self.assertEqual(equality_filter("memberUid", "alice"), "(memberUid=alice)")

    def test_bytes_value(self):
        self.assertEqual(equality_filter("memberUid", b"alice"), "(memberUid=alice)")

    def test_special_characters_are_escaped(self):
        self.assertEqual(equality_filter("cn", "a*(b)"), r"(cn=a\2a\28b\29)")
