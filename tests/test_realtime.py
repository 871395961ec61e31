import asyncio

from anyio import to_thread

from attendance_tracker.services import realtime
from attendance_tracker.services.realtime import EventHub, HubNotifier


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


class ClosedSocket:
    async def send_json(self, data):
        raise RuntimeError("connection closed")


def test_broadcast_reaches_every_connection():
    hub = EventHub()
    a, b, closed = FakeSocket(), FakeSocket(), ClosedSocket()

    async def scenario():
        await hub.connect("admin-1", a)
        await hub.connect("admin-2", b)
        await hub.connect("admin-2", closed)
        await hub.broadcast("attendance_check_in", {"userId": "u1"})
        await hub.disconnect("admin-2", b)
        await hub.broadcast("attendance_check_out", {"userId": "u1"})

    asyncio.run(scenario())

    assert a.sent == [
        {"event": "attendance_check_in", "data": {"userId": "u1"}},
        {"event": "attendance_check_out", "data": {"userId": "u1"}},
    ]
    assert b.sent == [{"event": "attendance_check_in", "data": {"userId": "u1"}}]


def test_hub_notifier_schedules_on_running_loop():
    hub = EventHub()
    ws = FakeSocket()

    async def scenario():
        await hub.connect("admin-1", ws)
        HubNotifier(hub).publish("attendance_check_in", {"attendanceId": "a1"})
        assert len(realtime._pending) == 1
        await asyncio.gather(*realtime._pending)

    asyncio.run(scenario())
    assert ws.sent == [{"event": "attendance_check_in", "data": {"attendanceId": "a1"}}]
    assert not realtime._pending


def test_hub_notifier_from_worker_thread():
    hub = EventHub()
    ws = FakeSocket()

    async def scenario():
        await hub.connect("admin-1", ws)
        # sync route handlers publish from the threadpool
        await to_thread.run_sync(HubNotifier(hub).publish, "attendance_check_out", {"attendanceId": "a2"})
        await asyncio.gather(*realtime._pending)

    asyncio.run(scenario())
    assert ws.sent == [{"event": "attendance_check_out", "data": {"attendanceId": "a2"}}]


def test_hub_notifier_outside_any_loop_is_a_no_op():
    hub = EventHub()
    HubNotifier(hub).publish("attendance_check_in", {})
    assert not realtime._pending
