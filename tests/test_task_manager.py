"""Tests for the TaskManager lifecycle helper."""

from __future__ import annotations

import asyncio
import unittest

from elio_chat.task_manager import TaskManager


async def _sleep_forever(marks: list[str], label: str) -> None:
    try:
        await asyncio.sleep(9999)
    except asyncio.CancelledError:
        marks.append(label)
        raise


class TaskManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate named and anonymous task lifecycle management."""

    async def test_spawn_named_task_and_cancel_by_name(self) -> None:
        tm = TaskManager()
        marks: list[str] = []
        task = tm.spawn(_sleep_forever(marks, "send"), name="send")
        await asyncio.sleep(0)

        await tm.cancel("send")

        self.assertTrue(task.done())
        self.assertEqual(marks, ["send"])

    async def test_finished_named_task_releases_its_slot(self) -> None:
        tm = TaskManager()

        async def _quick() -> str:
            return "done"

        task = tm.spawn(_quick(), name="suggestions")
        self.assertEqual(await task, "done")
        await asyncio.sleep(0)
        self.assertNotIn("suggestions", tm._named)

    async def test_replaced_slot_is_not_released_by_old_task(self) -> None:
        tm = TaskManager()
        marks: list[str] = []

        async def _quick() -> None:
            return None

        old = tm.spawn(_quick(), name="slot")
        new = tm.spawn(_sleep_forever(marks, "new"), name="slot")
        await old
        await asyncio.sleep(0)
        self.assertIs(tm._named["slot"], new)
        await tm.cancel_all()
        self.assertEqual(marks, ["new"])

    async def test_replaced_running_task_is_still_cancelled_on_shutdown(self) -> None:
        tm = TaskManager()
        marks: list[str] = []
        stale = tm.spawn(_sleep_forever(marks, "stale"), name="send")
        fresh = tm.spawn(_sleep_forever(marks, "fresh"), name="send")
        await asyncio.sleep(0)

        await tm.cancel_all()

        self.assertTrue(stale.done())
        self.assertTrue(fresh.done())
        self.assertCountEqual(marks, ["stale", "fresh"])

    async def test_cancel_nonexistent_name_is_noop(self) -> None:
        tm = TaskManager()
        await tm.cancel("does_not_exist")

    async def test_cancel_all_handles_mixed_tasks(self) -> None:
        tm = TaskManager()
        marks: list[str] = []
        tm.spawn(_sleep_forever(marks, "named"), name="n1")
        tm.spawn(_sleep_forever(marks, "anon"))
        await asyncio.sleep(0)

        await tm.cancel_all()

        self.assertCountEqual(marks, ["named", "anon"])

    async def test_failed_task_is_logged(self) -> None:
        tm = TaskManager()

        async def _boom() -> None:
            raise RuntimeError("boom")

        with self.assertLogs("elio_chat.task_manager", level="WARNING") as logs:
            task = tm.spawn(_boom())
            with self.assertRaises(RuntimeError):
                await task
            await asyncio.sleep(0)
        self.assertTrue(any("task.exception" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
