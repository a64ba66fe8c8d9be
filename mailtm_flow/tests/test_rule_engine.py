"""Testes do motor de regras e da leitura das definições."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from mailtm_flow.core.exceptions import InvalidRuleException
from mailtm_flow.models.rules import FromEquals, RuleAction, SubjectContains, load_rules_file, parse_rules
from mailtm_flow.services.rule_engine import RuleEngine
from mailtm_flow.tests.fakes import FakeLogger, FakeMailClient, make_message

SPAM_THEN_NEWSLETTER = [
    {"from": "spam@x", "action": "delete"},
    {"subjectContains": "Newsletter", "action": "markAsRead"},
]


class ParseRulesTests(unittest.TestCase):
    def test_shorthand_and_canonical_forms(self) -> None:
        rules = parse_rules([
            {"from": "a@x", "action": "delete"},
            {"name": "news", "condition": {"type": "subjectContains", "text": "News"}, "action": "markAsRead"},
            {"always": True, "action": "ignore"},
        ])

        self.assertEqual(len(rules), 3)
        self.assertEqual(rules.rejected, [])
        self.assertIsInstance(rules.rules[0].condition, FromEquals)
        self.assertIsInstance(rules.rules[1].condition, SubjectContains)
        self.assertEqual(rules.rules[1].label, "news")
        self.assertEqual(rules.rules[2].action, RuleAction.IGNORE)

    def test_malformed_rules_are_skipped_not_fatal(self) -> None:
        rules = parse_rules([
            {"from": "a@x"},                                   # sem ação
            {"action": "delete"},                              # sem condição
            {"from": "a@x", "action": "archive"},              # ação desconhecida
            {"condition": {"type": "bodyContains", "text": "x"}, "action": "delete"},
            {"from": "a@x", "subjectContains": "b", "action": "delete"},
            "não é um objeto",
            {"subjectContains": "ok", "action": "markAsRead"},
        ])

        self.assertEqual(len(rules), 1)
        self.assertEqual([r.index for r in rules.rejected], [0, 1, 2, 3, 4, 5])
        self.assertTrue(all(r.reason for r in rules.rejected))

    def test_non_list_input_is_rejected(self) -> None:
        with self.assertRaises(InvalidRuleException):
            parse_rules({"from": "a@x", "action": "delete"})

    def test_load_rules_file_accepts_json_and_yaml_wrapper(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            json_path = Path(tmp) / "rules.json"
            json_path.write_text(json.dumps(SPAM_THEN_NEWSLETTER), encoding="utf-8")
            yaml_path = Path(tmp) / "rules.yaml"
            yaml_path.write_text("rules:\n  - from: spam@x\n    action: delete\n", encoding="utf-8")

            self.assertEqual(len(load_rules_file(json_path)), 2)
            self.assertEqual(len(load_rules_file(yaml_path)), 1)

    def test_load_rules_file_missing(self) -> None:
        with self.assertRaises(InvalidRuleException):
            load_rules_file("/nao/existe/rules.yaml")


class RuleEngineTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.logger = FakeLogger()

    async def test_first_match_wins(self) -> None:
        message = make_message("m1", sender="spam@x", subject="Newsletter")
        client = FakeMailClient([message])
        engine = RuleEngine(client, SPAM_THEN_NEWSLETTER, logger=self.logger)

        outcome = await engine.apply(message)

        self.assertEqual(outcome.action, RuleAction.DELETE)
        self.assertTrue(outcome.applied)
        self.assertEqual(client.deleted, ["m1"])
        self.assertEqual(client.seen_calls, [])

    async def test_no_match_leaves_message_untouched(self) -> None:
        message = make_message("m1", sender="friend@x", subject="Oi")
        client = FakeMailClient([message])
        engine = RuleEngine(client, SPAM_THEN_NEWSLETTER, logger=self.logger)

        self.assertIsNone(engine.evaluate(message))
        outcome = await engine.apply(message)

        self.assertFalse(outcome.matched)
        self.assertEqual((client.deleted, client.seen_calls), ([], []))

    async def test_mark_as_read_is_idempotent(self) -> None:
        message = make_message("m1", sender="news@x", subject="Weekly Newsletter")
        client = FakeMailClient([message])
        engine = RuleEngine(client, SPAM_THEN_NEWSLETTER, logger=self.logger)

        first = await engine.apply(message)
        second = await engine.apply(message)

        self.assertTrue(message.seen)
        self.assertTrue(first.applied)
        self.assertFalse(second.applied)
        self.assertEqual(client.seen_calls, ["m1"])

    async def test_subject_match_is_case_sensitive(self) -> None:
        message = make_message("m1", subject="weekly newsletter")
        engine = RuleEngine(FakeMailClient([message]), SPAM_THEN_NEWSLETTER, logger=self.logger)

        self.assertIsNone(engine.evaluate(message))

    async def test_ignore_shortcuts_later_rules(self) -> None:
        message = make_message("m1", sender="boss@x", subject="Newsletter")
        client = FakeMailClient([message])
        engine = RuleEngine(
            client,
            [{"from": "boss@x", "action": "ignore"}, {"subjectContains": "Newsletter", "action": "delete"}],
            logger=self.logger,
        )

        outcome = await engine.apply(message)

        self.assertEqual(outcome.action, RuleAction.IGNORE)
        self.assertFalse(outcome.applied)
        self.assertEqual(client.deleted, [])

    async def test_malformed_rules_are_logged_and_valid_ones_still_apply(self) -> None:
        message = make_message("m1", sender="spam@x")
        client = FakeMailClient([message])
        engine = RuleEngine(client, [{"from": "spam@x"}, {"from": "spam@x", "action": "delete"}], logger=self.logger)

        await engine.apply(message)

        self.assertEqual(len(self.logger.levels("aviso")), 1)
        self.assertEqual(client.deleted, ["m1"])

    async def test_apply_all_collects_errors_per_item(self) -> None:
        messages = [
            make_message("m3", sender="spam@x"),
            make_message("m2", sender="spam@x"),
            make_message("m1", sender="spam@x"),
        ]
        client = FakeMailClient(messages)
        client.fail_delete_on = "m2"
        engine = RuleEngine(client, SPAM_THEN_NEWSLETTER, logger=self.logger)

        results = await engine.apply_all(messages)

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertEqual(client.deleted, ["m3", "m1"])
        self.assertEqual(results[1].to_dict()["index"], 1)
        self.assertIn("error", results[1].to_dict())

    async def test_apply_all_halt_on_error(self) -> None:
        messages = [make_message("m2", sender="spam@x"), make_message("m1", sender="spam@x")]
        client = FakeMailClient(messages)
        client.fail_delete_on = "m2"
        engine = RuleEngine(client, SPAM_THEN_NEWSLETTER, logger=self.logger)

        results = await engine.apply_all(messages, halt_on_error=True)

        self.assertEqual(len(results), 1)
        self.assertFalse(results[0].ok)
        self.assertEqual(client.deleted, [])

    async def test_run_reads_whole_inbox(self) -> None:
        client = FakeMailClient([make_message("m2", sender="spam@x"), make_message("m1", subject="Newsletter")])
        engine = RuleEngine(client, parse_rules(SPAM_THEN_NEWSLETTER), logger=self.logger)

        results = await engine.run()

        self.assertEqual([r.value.action for r in results], [RuleAction.DELETE, RuleAction.MARK_AS_READ])
        self.assertEqual(client.deleted, ["m2"])
        self.assertEqual(client.seen_calls, ["m1"])
        self.assertIn("Aplicando regras na caixa", self.logger.levels("info"))


if __name__ == "__main__":
    unittest.main()
