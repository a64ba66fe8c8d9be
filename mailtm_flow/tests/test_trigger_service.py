"""Testes do gatilho de novas mensagens."""

from __future__ import annotations

import asyncio
import unittest

from mailtm_flow.core.clock import Clock
from mailtm_flow.core.config import TriggerConfig
from mailtm_flow.core.exceptions import TriggerStateException
from mailtm_flow.services.trigger_service import TriggerLoop, TriggerState
from mailtm_flow.tests.fakes import FakeClock, FakeLogger, FakeMailClient, make_message


def inbox(*ids: str):
    """Mensagens mais recentes primeiro; ``m3`` é mais nova que ``m1``."""
    return [make_message(i, subject=f"assunto {i}", minute=int(i[1:])) for i in ids]


class BlockingClock(Clock):
    """Relógio cujo ``sleep`` nunca termina sozinho."""

    def __init__(self) -> None:
        self.sleeping = asyncio.Event()

    def monotonic(self) -> float:
        return 0.0

    async def sleep(self, seconds: float) -> None:
        self.sleeping.set()
        await asyncio.Event().wait()


class TriggerPollTests(unittest.IsolatedAsyncioTestCase):
    def _trigger(self, client, sink, **config) -> TriggerLoop:
        self.logger = FakeLogger()
        return TriggerLoop(client, sink, TriggerConfig(**config), clock=FakeClock(), logger=self.logger)

    async def test_first_poll_emits_existing_page_oldest_first(self) -> None:
        client = FakeMailClient(inbox("m3", "m2", "m1"))
        emitted = []
        trigger = self._trigger(client, emitted.append, first_poll="emit")

        result = await trigger.poll()

        self.assertEqual([m.id for m in emitted], ["m1", "m2", "m3"])
        self.assertEqual([m.id for m in result], ["m1", "m2", "m3"])
        self.assertEqual(trigger.watermark.last_seen_id, "m3")
        self.assertEqual(client.seen_calls, ["m1", "m2", "m3"])

    async def test_first_poll_skip_only_sets_baseline(self) -> None:
        client = FakeMailClient(inbox("m3", "m2", "m1"))
        emitted = []
        trigger = self._trigger(client, emitted.append, first_poll="skip")

        await trigger.poll()
        self.assertEqual(emitted, [])
        self.assertEqual(trigger.watermark.last_seen_id, "m3")
        self.assertEqual(client.seen_calls, [])

        client.deliver(make_message("m4", minute=4))
        await trigger.poll()
        self.assertEqual([m.id for m in emitted], ["m4"])

    async def test_empty_first_poll_emits_nothing_and_leaves_watermark_unset(self) -> None:
        client = FakeMailClient([])
        emitted = []
        trigger = self._trigger(client, emitted.append, first_poll="skip")

        await trigger.poll()

        self.assertEqual(emitted, [])
        self.assertFalse(trigger.watermark.is_set)
        self.assertTrue(trigger.primed)

        # A linha de base já existe: a primeira mensagem real é emitida
        client.deliver(make_message("m1", minute=1))
        await trigger.poll()
        self.assertEqual([m.id for m in emitted], ["m1"])

    async def test_never_emits_same_id_twice(self) -> None:
        client = FakeMailClient(inbox("m2", "m1"))
        emitted = []
        trigger = self._trigger(client, emitted.append)

        await trigger.poll()
        await trigger.poll()
        client.deliver(make_message("m3", minute=3))
        client.deliver(make_message("m4", minute=4))
        await trigger.poll()
        await trigger.poll()

        ids = [m.id for m in emitted]
        self.assertEqual(ids, ["m1", "m2", "m3", "m4"])
        self.assertEqual(len(ids), len(set(ids)))

    async def test_failed_poll_is_swallowed_and_retried_next_tick(self) -> None:
        client = FakeMailClient(inbox("m1"))
        client.fail_polls = 1
        emitted = []
        trigger = self._trigger(client, emitted.append)

        self.assertEqual(await trigger.poll(), [])
        self.assertFalse(trigger.watermark.is_set)
        self.assertFalse(trigger.primed)
        self.assertEqual(trigger.state, TriggerState.IDLE)
        self.assertTrue(self.logger.levels("aviso"))

        await trigger.poll()
        self.assertEqual([m.id for m in emitted], ["m1"])

    async def test_mark_as_read_disabled_and_already_seen(self) -> None:
        messages = inbox("m2", "m1")
        messages[1].seen = True
        client = FakeMailClient(messages)
        trigger = self._trigger(client, lambda m: None, mark_as_read=True)

        await trigger.poll()
        self.assertEqual(client.seen_calls, ["m2"])

        other = FakeMailClient(inbox("m1"))
        no_mark = self._trigger(other, lambda m: None, mark_as_read=False)
        await no_mark.poll()
        self.assertEqual(other.seen_calls, [])

    async def test_sink_failure_does_not_stop_batch_or_rewind_watermark(self) -> None:
        client = FakeMailClient(inbox("m3", "m2", "m1"))
        delivered = []

        def sink(message):
            if message.id == "m2":
                raise RuntimeError("sink fora do ar")
            delivered.append(message.id)

        trigger = self._trigger(client, sink)
        result = await trigger.poll()

        self.assertEqual(delivered, ["m1", "m3"])
        self.assertEqual([m.id for m in result], ["m1", "m3"])
        self.assertEqual(trigger.watermark.last_seen_id, "m3")
        self.assertEqual(await trigger.poll(), [])

    async def test_mark_read_failure_still_emits(self) -> None:
        client = FakeMailClient(inbox("m1"))
        client.fail_seen = True
        emitted = []
        trigger = self._trigger(client, emitted.append)

        await trigger.poll()

        self.assertEqual([m.id for m in emitted], ["m1"])
        self.assertFalse(emitted[0].seen)

    async def test_async_sink_is_awaited(self) -> None:
        client = FakeMailClient(inbox("m1"))
        emitted = []

        async def sink(message):
            await asyncio.sleep(0)
            emitted.append(message.id)

        await self._trigger(client, sink).poll()
        self.assertEqual(emitted, ["m1"])

    async def test_concurrent_poll_is_rejected(self) -> None:
        client = FakeMailClient(inbox("m1"))
        release = asyncio.Event()

        async def sink(message):
            await release.wait()

        trigger = self._trigger(client, sink)
        running = asyncio.create_task(trigger.poll())
        while trigger.state != TriggerState.EMITTING:
            await asyncio.sleep(0)

        with self.assertRaises(TriggerStateException):
            await trigger.poll()

        release.set()
        await running
        self.assertEqual(trigger.state, TriggerState.IDLE)


class TriggerLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_first_tick_waits_one_interval_and_stop_from_sink_finishes_batch(self) -> None:
        clock = FakeClock()
        client = FakeMailClient(inbox("m3", "m2", "m1"))
        emitted = []
        trigger = None

        def sink(message):
            emitted.append(message.id)
            trigger.stop()

        trigger = TriggerLoop(client, sink, TriggerConfig(poll_interval=15), clock=clock, logger=FakeLogger())
        trigger.start()
        await asyncio.wait_for(trigger.join(), timeout=1)

        self.assertEqual(clock.sleeps, [15])
        self.assertEqual(emitted, ["m1", "m2", "m3"])
        self.assertEqual(client.get_messages_calls, 1)
        self.assertEqual(trigger.state, TriggerState.STOPPED)

    async def test_stop_while_sleeping_prevents_any_tick(self) -> None:
        clock = BlockingClock()
        client = FakeMailClient(inbox("m1"))
        trigger = TriggerLoop(client, lambda m: None, TriggerConfig(), clock=clock, logger=FakeLogger())

        trigger.start()
        await asyncio.wait_for(clock.sleeping.wait(), timeout=1)
        trigger.stop()
        await asyncio.wait_for(trigger.join(), timeout=1)

        self.assertEqual(client.get_messages_calls, 0)
        self.assertEqual(trigger.state, TriggerState.STOPPED)

    async def test_stop_is_idempotent_and_blocks_restart_and_poll(self) -> None:
        trigger = TriggerLoop(FakeMailClient([]), lambda m: None, clock=FakeClock(), logger=FakeLogger())
        trigger.stop()
        trigger.stop()

        with self.assertRaises(TriggerStateException):
            trigger.start()
        with self.assertRaises(TriggerStateException):
            await trigger.poll()

    async def test_poll_failures_never_end_the_loop(self) -> None:
        clock = FakeClock()
        client = FakeMailClient(inbox("m1"))
        client.fail_polls = 3
        emitted = []
        trigger = None

        def sink(message):
            emitted.append(message.id)
            trigger.stop()

        trigger = TriggerLoop(client, sink, TriggerConfig(poll_interval=10), clock=clock, logger=FakeLogger())
        trigger.start()
        await asyncio.wait_for(trigger.join(), timeout=1)

        self.assertEqual(client.get_messages_calls, 4)
        self.assertEqual(emitted, ["m1"])
        self.assertEqual(clock.sleeps, [10, 10, 10, 10])


if __name__ == "__main__":
    unittest.main()
