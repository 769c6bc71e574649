import unittest

from sql_formatter_thing.config import Configuration, RuleConfig
from sql_formatter_thing.engine import check_source
from sql_formatter_thing.registry import default_registry


def lint(sql, *rule_ids, **params):
    """Run the given rules (all when none are named) with optional parameter overrides."""
    registry = default_registry()
    if rule_ids:
        cfg = Configuration.only(rule_ids)
        if params:
            (rid,) = rule_ids
            cfg = Configuration(
                rules={rid: RuleConfig(enabled=True, parameters=params)},
                default_enabled=False,
            )
    else:
        cfg = Configuration()
    return check_source(sql, registry.resolve(cfg), path="q.sql")


def ids(violations):
    return [v.rule_id for v in violations]


class TestKeywordCase(unittest.TestCase):
    def test_example_query_with_default_configuration(self):
        violations = lint("select firstName from Staff;")
        self.assertEqual(ids(violations), ["SQL001", "SQL001"])
        self.assertEqual([(v.line, v.col) for v in violations], [(1, 1), (1, 18)])
        self.assertEqual([v.suggested_fix for v in violations], ["SELECT", "FROM"])
        self.assertTrue(all(v.fix_safe for v in violations))

    def test_correctly_cased_query_is_clean(self):
        self.assertEqual(lint("SELECT a, COUNT(*) FROM b WHERE c IS NOT NULL GROUP BY a", "SQL001"), [])

    def test_lower_case_configuration(self):
        violations = lint("SELECT a from b", "SQL001", case="lower")
        self.assertEqual([v.suggested_fix for v in violations], ["select"])

    def test_mixed_case_keyword(self):
        (v,) = lint("Select 1", "SQL001")
        self.assertEqual((v.suggested_fix, v.col, v.end_col), ("SELECT", 1, 7))


class TestIdentifierRules(unittest.TestCase):
    def test_length_boundary(self):
        at_limit = lint(f"SELECT {'a' * 30} FROM t", "SQL002")
        over = lint(f"SELECT {'a' * 31} FROM t", "SQL002")
        self.assertEqual(at_limit, [])
        self.assertEqual(ids(over), ["SQL002"])

    def test_length_counts_utf8_bytes(self):
        (v,) = lint(f"SELECT {'é' * 16} FROM t", "SQL002")
        self.assertIn("32 bytes", v.message)

    def test_length_is_configurable(self):
        self.assertEqual(ids(lint("SELECT abcdef FROM t", "SQL002", max_length=5)), ["SQL002"])

    def test_charset(self):
        self.assertEqual(ids(lint('SELECT "first name" FROM t', "SQL003")), ["SQL003"])
        self.assertEqual(lint("SELECT first_name FROM t", "SQL003"), [])

    def test_leading_digit(self):
        self.assertEqual(ids(lint('SELECT "1abc" FROM t', "SQL004")), ["SQL004"])
        self.assertEqual(lint("SELECT abc1 FROM t", "SQL004"), [])

    def test_trailing_underscore(self):
        (v,) = lint("SELECT name_ FROM t", "SQL005")
        self.assertEqual((v.line, v.col), (1, 8))

    def test_quoted_keyword_is_reserved(self):
        self.assertEqual(ids(lint('SELECT "select" FROM t', "SQL006")), ["SQL006"])

    def test_configured_reserved_words(self):
        self.assertEqual(ids(lint("SELECT name FROM t", "SQL006", reserved_words=["NAME"])), ["SQL006"])
        self.assertEqual(lint("SELECT name FROM t", "SQL006"), [])

    def test_forbidden_prefix_and_suffix(self):
        self.assertEqual(ids(lint("SELECT a FROM tbl_users", "SQL007")), ["SQL007"])
        self.assertEqual(
            ids(lint("SELECT a FROM users_tbl", "SQL007", forbidden_prefixes=[], forbidden_suffixes=["_tbl"])),
            ["SQL007"],
        )

    def test_example_query_has_no_identifier_violations(self):
        naming = [v for v in lint("select firstName from Staff;") if v.rule_id in {"SQL002", "SQL003", "SQL004", "SQL005", "SQL006", "SQL007"}]
        self.assertEqual(naming, [])


class TestClauseIndentation(unittest.TestCase):
    def test_indented_top_level_clause(self):
        (v,) = lint("SELECT a\n  FROM t\nWHERE b = 1", "SQL010")
        self.assertEqual((v.line, v.col), (2, 3))
        self.assertEqual((v.suggested_fix, v.offset, v.length), ("", 9, 2))
        self.assertFalse(v.fix_safe)

    def test_multi_word_clause(self):
        (v,) = lint("SELECT a\nFROM t\n  GROUP BY a", "SQL010")
        self.assertIn("GROUP BY", v.message)

    def test_subquery_clauses_may_be_indented(self):
        sql = "SELECT a\nFROM (\n  SELECT b\n  FROM c\n) AS x"
        self.assertEqual(lint(sql, "SQL010"), [])

    def test_clause_in_the_middle_of_a_line_is_ignored(self):
        self.assertEqual(lint("SELECT a FROM t WHERE b = 1", "SQL010"), [])


class TestDependentAlignment(unittest.TestCase):
    def test_aligned_and(self):
        self.assertEqual(lint("SELECT a\nFROM t\nWHERE x = 1\n  AND y = 2", "SQL011"), [])

    def test_misaligned_and(self):
        (v,) = lint("SELECT a\nFROM t\nWHERE x = 1\nAND y = 2", "SQL011")
        self.assertEqual((v.line, v.col), (4, 1))
        self.assertEqual((v.suggested_fix, v.length), ("  ", 0))

    def test_between_and_is_not_a_dependent_keyword(self):
        self.assertEqual(lint("SELECT a\nFROM t\nWHERE x BETWEEN 1\nAND 2", "SQL011"), [])

    def test_on_aligns_with_join(self):
        self.assertEqual(lint("SELECT a\nFROM t\nJOIN u\n  ON t.id = u.id", "SQL011"), [])
        (v,) = lint("SELECT a\nFROM t\nJOIN u\n    ON t.id = u.id", "SQL011")
        self.assertEqual((v.suggested_fix, v.length), ("  ", 4))

    def test_set_aligns_with_update(self):
        self.assertEqual(lint("UPDATE t\n   SET a = 1", "SQL011"), [])
        self.assertEqual(ids(lint("UPDATE t\nSET a = 1", "SQL011")), ["SQL011"])

    def test_tolerance(self):
        sql = "SELECT a\nFROM t\nWHERE x = 1\n AND y = 2"
        self.assertEqual(ids(lint(sql, "SQL011")), ["SQL011"])
        self.assertEqual(lint(sql, "SQL011", tolerance=1), [])


class TestImplicitAlias(unittest.TestCase):
    def test_column_alias_without_as(self):
        (v,) = lint("SELECT a b FROM t", "SQL012")
        self.assertEqual((v.col, v.suggested_fix), (10, "AS b"))

    def test_table_alias_without_as(self):
        self.assertEqual(ids(lint("SELECT a FROM t x", "SQL012")), ["SQL012"])

    def test_function_and_subquery_aliases(self):
        self.assertEqual(ids(lint("SELECT COUNT(*) n FROM t", "SQL012")), ["SQL012"])
        self.assertEqual(ids(lint("SELECT a FROM (SELECT 1) sub", "SQL012")), ["SQL012"])

    def test_explicit_alias_and_qualified_names_are_fine(self):
        self.assertEqual(lint("SELECT s.name AS n FROM staff AS s", "SQL012"), [])
        self.assertEqual(lint("SELECT a, b FROM t WHERE a = b", "SQL012"), [])

    def test_trailing_clause_words_are_not_aliases(self):
        self.assertEqual(lint("INSERT INTO t SELECT a FROM u RETURNING id", "SQL012"), [])
        self.assertEqual(lint("SELECT a FROM t TABLESAMPLE SYSTEM (10)", "SQL012"), [])
        self.assertEqual(lint("SELECT a FROM t QUALIFY a > 1", "SQL012"), [])


class TestWhitespaceRules(unittest.TestCase):
    def test_trailing_whitespace(self):
        (v,) = lint("SELECT a  \nFROM t", "SQL013")
        self.assertEqual((v.line, v.col, v.suggested_fix), (1, 9, ""))

    def test_trailing_whitespace_at_end_of_input(self):
        self.assertEqual(ids(lint("SELECT a ", "SQL013")), ["SQL013"])

    def test_trailing_whitespace_after_line_comment(self):
        (v,) = lint("SELECT a -- note   \nFROM t", "SQL013")
        self.assertEqual((v.line, v.col, v.end_col, v.suggested_fix), (1, 17, 20, ""))
        self.assertEqual((v.offset, v.length), (16, 3))
        self.assertEqual(lint("SELECT a -- note\nFROM t", "SQL013"), [])

    def test_tab_indentation_fix_is_safe(self):
        (v,) = lint("SELECT a\n\tFROM t", "SQL014")
        self.assertEqual(v.suggested_fix, "    ")
        self.assertTrue(v.fix_safe)
        (v,) = lint("SELECT a\n\tFROM t", "SQL014", tab_width=2)
        self.assertEqual(v.suggested_fix, "  ")

    def test_tabs_between_tokens_are_not_indentation(self):
        self.assertEqual(lint("SELECT\ta FROM t", "SQL014"), [])


class TestRuleIndependence(unittest.TestCase):
    def test_all_rules_equal_union_of_single_rules(self):
        sql = "select s.firstName n\n  from tbl_Staff s\nwhere a_ = 1\nand b = 2  \n\tlimit 5"
        together = lint(sql)
        alone = []
        for rule in default_registry():
            alone.extend(lint(sql, rule.id))
        key = lambda v: (v.line, v.col, v.rule_id, v.message)
        self.assertEqual(sorted(together, key=key), sorted(alone, key=key))

    def test_configuration_with_only_keyword_case_ignores_indentation(self):
        sql = "SELECT a\n    FROM t\n        WHERE b = 1\nAND c = 2"
        self.assertEqual(lint(sql, "SQL001"), [])
        self.assertNotEqual(lint(sql), [])


if __name__ == "__main__":
    unittest.main()
