"""
Tests for QueryIntent and the chainable Query builder.
"""

import unittest
from unittest.mock import MagicMock

from ldapmapper.filters import AND, OR
from ldapmapper.query import ALL, COUNT, FIRST, LIST, Query, QueryIntent
from ldapmapper.relations import RelationSpec
from ldapmapper.results import Result

GROUPS = "ou=groups,dc=example,dc=com"


class TestQueryIntent(unittest.TestCase):
    """Test query intent construction and validation."""

    def test_defaults(self):
        intent = QueryIntent()
        self.assertEqual(intent.type, ALL)
        self.assertIsNone(intent.conditions)
        self.assertEqual(intent.combine, OR)
        self.assertEqual(intent.fields, ())
        self.assertIsNone(intent.limit)

    def test_fields_string_is_split(self):
        self.assertEqual(QueryIntent(fields="cn, mail").fields, ("cn", "mail"))

    def test_invalid_limit(self):
        for limit in (0, -1, "5", True, 1.5):
            with self.subTest(limit=limit):
                with self.assertRaises(ValueError):
                    QueryIntent(limit=limit)

    def test_invalid_combine(self):
        with self.assertRaises(ValueError):
            QueryIntent(combine="nand")

    def test_first_always_fetches_one(self):
        self.assertEqual(QueryIntent(type=FIRST, limit=10).effective_limit, 1)
        self.assertEqual(QueryIntent(type=ALL, limit=10).effective_limit, 10)
        self.assertIsNone(QueryIntent(type=COUNT).effective_limit)

    def test_conditions_are_copied(self):
        conditions = {"uid": "alice"}
        intent = QueryIntent(conditions=conditions)
        conditions["uid"] = "bob"
        self.assertEqual(intent.conditions, {"uid": "alice"})

    def test_from_none(self):
        self.assertEqual(QueryIntent.from_value(None), QueryIntent())

    def test_from_intent(self):
        intent = QueryIntent(limit=3)
        self.assertIs(QueryIntent.from_value(intent), intent)

    def test_from_dict(self):
        intent = QueryIntent.from_value(
            {
                "conditions": {"objectClass": "posixAccount"},
                "combine": AND,
                "fields": ["uid", "cn"],
                "limit": 5,
                "order": "-uid",
                "belongs_to": {"on": {"memberOf": "dn"}, "base": GROUPS},
                "basedn": "ou=people,dc=example,dc=com",
            }
        )
        self.assertEqual(intent.combine, AND)
        self.assertEqual(intent.fields, ("uid", "cn"))
        self.assertEqual(intent.limit, 5)
        self.assertEqual(intent.order, "-uid")
        self.assertIsInstance(intent.belongs_to, RelationSpec)
        self.assertIsNone(intent.has_many)
        self.assertEqual(intent.basedn, "ou=people,dc=example,dc=com")

    def test_from_dict_with_unknown_keys(self):
        with self.assertRaises(ValueError):
            QueryIntent.from_value({"conditions": "uid=alice", "sort": "uid"})


class TestQuery(unittest.TestCase):
    """Test the chainable builder."""

    def setUp(self):
        self.mapper = MagicMock()
        self.mapper.find.return_value = Result.success([])

    def test_each_step_returns_a_new_query(self):
        base = Query(self.mapper)
        selected = base.select("cn, mail")
        ordered = selected.order("cn")
        self.assertIsNot(base, selected)
        self.assertEqual(base.intent.fields, ())
        self.assertEqual(selected.intent.fields, ("cn", "mail"))
        self.assertIsNone(selected.intent.order)
        self.assertEqual(ordered.intent.order, "cn")

    def test_branches_do_not_leak(self):
        people = Query(self.mapper).select("uid")
        admins = people.where({"memberOf": "cn=admins"}, combine=AND)
        shells = people.where("loginShell=/bin/zsh")
        self.assertIsNone(people.intent.conditions)
        self.assertEqual(admins.intent.conditions, {"memberOf": "cn=admins"})
        self.assertEqual(admins.intent.combine, AND)
        self.assertEqual(shells.intent.conditions, "loginShell=/bin/zsh")
        self.assertEqual(shells.intent.combine, OR)

    def test_relations(self):
        query = (
            Query(self.mapper)
            .belongs_to({"on": {"memberOf": "dn"}, "base": GROUPS})
            .has_many({"on": {"uid": "memberUid"}, "base": GROUPS})
        )
        self.assertEqual(query.intent.belongs_to.local_key, "memberof")
        self.assertEqual(query.intent.has_many.remote_attribute, "memberUid")
        self.assertIsNone(query.belongs_to(None).intent.belongs_to)

    def test_limit_and_base(self):
        query = Query(self.mapper).limit(2).base(GROUPS)
        self.assertEqual(query.intent.limit, 2)
        self.assertEqual(query.intent.basedn, GROUPS)
        with self.assertRaises(ValueError):
            Query(self.mapper).limit(0)

    def test_terminals_call_find(self):
        query = Query(self.mapper).where("uid=alice")
        for method, query_type in (
            (query.first, FIRST),
            (query.all, ALL),
            (query.count, COUNT),
            (query.as_list, LIST),
        ):
            with self.subTest(query_type=query_type):
                self.mapper.find.reset_mock()
                method()
                self.mapper.find.assert_called_once_with(query_type, query.intent)

    def test_iteration(self):
        self.mapper.find.return_value = Result.success([{"People": {"uid": "alice"}}])
        self.assertEqual(list(Query(self.mapper)), [{"People": {"uid": "alice"}}])

    def test_iteration_over_a_failure(self):
        self.mapper.find.return_value = Result(error=MagicMock())
        self.assertEqual(list(Query(self.mapper)), [])
