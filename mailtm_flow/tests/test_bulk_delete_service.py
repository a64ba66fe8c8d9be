"""Testes da exclusão em lote."""

from __future__ import annotations

import unittest

from mailtm_flow.core.exceptions import BulkDeleteException, RemoteAPIException
from mailtm_flow.services.bulk_delete_service import BulkDeleteService
from mailtm_flow.tests.fakes import FakeClock, FakeLogger, FakeMailClient, make_message


class BulkDeleteServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.client = FakeMailClient([make_message(f"m{i}", minute=i) for i in (4, 3, 2, 1)], clock=self.clock)
        self.service = BulkDeleteService(self.client, clock=self.clock, logger=FakeLogger())

    async def test_deletes_every_message_sequentially_with_pacing(self) -> None:
        result = await self.service.delete_all()

        self.assertTrue(result.ok)
        self.assertEqual(result.deleted_count, 4)
        self.assertEqual(result.total, 4)
        self.assertEqual(self.client.deleted, ["m4", "m3", "m2", "m1"])
        self.assertEqual(self.clock.sleeps, [0.15, 0.15, 0.15])
        gaps = [b - a for a, b in zip(self.client.delete_times, self.client.delete_times[1:])]
        self.assertTrue(all(gap >= 0.15 - 1e-9 for gap in gaps))
        result.raise_for_error()

    async def test_failure_stops_batch_and_reports_partial_count(self) -> None:
        self.client.fail_delete_on = "m2"

        result = await self.service.delete_all()

        self.assertFalse(result.ok)
        self.assertEqual(result.deleted_count, 2)
        self.assertEqual(result.total, 4)
        self.assertEqual(result.failed_message_id, "m2")
        self.assertIsInstance(result.error, RemoteAPIException)
        self.assertEqual(self.client.deleted, ["m4", "m3"])

        with self.assertRaises(BulkDeleteException) as ctx:
            result.raise_for_error()
        self.assertEqual(ctx.exception.deleted_count, 2)
        self.assertIs(ctx.exception.cause, result.error)

    async def test_empty_inbox(self) -> None:
        service = BulkDeleteService(FakeMailClient([]), clock=self.clock, logger=FakeLogger())

        result = await service.delete_all()

        self.assertEqual((result.deleted_count, result.total), (0, 0))
        self.assertEqual(self.clock.sleeps, [])

    def test_negative_delay_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BulkDeleteService(self.client, delay=-1, logger=FakeLogger())


if __name__ == "__main__":
    unittest.main()
