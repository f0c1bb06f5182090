import asyncio
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from printdesk.routers.realtime import stop_pump


def test_stop_pump_logs_a_pusher_that_already_failed(caplog):
    async def _failing_push():
        raise RuntimeError("client went away")

    async def _scenario():
        task = asyncio.create_task(_failing_push())
        await asyncio.sleep(0)
        await stop_pump(task, "tech-1")
        return task

    with caplog.at_level(logging.WARNING, logger="printdesk.routers.realtime"):
        task = asyncio.run(_scenario())

    assert task.done() and not task.cancelled()
    failures = [r for r in caplog.records if r.getMessage() == "realtime.push_failed"]
    assert len(failures) == 1
    assert failures[0].extra_data == {"user_id": "tech-1"}
    assert isinstance(failures[0].exc_info[1], RuntimeError)


def test_stop_pump_cancels_a_running_pusher(caplog):
    async def _idle_push():
        await asyncio.Event().wait()

    async def _scenario():
        task = asyncio.create_task(_idle_push())
        await asyncio.sleep(0)
        await stop_pump(task, "tech-1")
        return task

    with caplog.at_level(logging.WARNING, logger="printdesk.routers.realtime"):
        task = asyncio.run(_scenario())

    assert task.cancelled()
    assert not [r for r in caplog.records if r.getMessage() == "realtime.push_failed"]
