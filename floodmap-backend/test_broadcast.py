import asyncio

from app.schemas.messages import Envelope, ZONE_CREATED
from app.services.broadcast import BroadcastDispatcher
from app.services.connection_registry import ConnectionRegistry, Role


def _setup(make_socket):
    registry = ConnectionRegistry()
    return registry, BroadcastDispatcher(registry)


def test_fan_out_reaches_only_users(make_socket):
    registry, dispatcher = _setup(make_socket)
    u1, u2, cam, peer = make_socket(), make_socket(), make_socket(), make_socket()
    registry.register("u1", Role.USER, u1)
    registry.register("u2", Role.USER, u2)
    registry.register("cam1", Role.CAMERA, cam)
    registry.register("p1", Role.SIGNALING_PEER, peer)

    envelope = Envelope(type=ZONE_CREATED, payload={"id": "z1"})
    delivered = asyncio.run(dispatcher.to_all_of_role(Role.USER, envelope))

    assert delivered == 2
    assert u1.messages() == [{"type": "zone_created", "payload": {"id": "z1"}}]
    assert u2.messages() == u1.messages()
    assert cam.sent == []
    assert peer.sent == []


def test_failing_socket_does_not_block_others(make_socket):
    registry, dispatcher = _setup(make_socket)
    ok1, broken, ok2 = make_socket(), make_socket(fail=True), make_socket()
    registry.register("a", Role.USER, ok1)
    registry.register("b", Role.USER, broken)
    registry.register("c", Role.USER, ok2)

    delivered = asyncio.run(dispatcher.broadcast("zone_deleted", {"zoneId": "z1"}))

    assert delivered == 2
    assert len(ok1.sent) == 1
    assert len(ok2.sent) == 1


def test_exclude_sender(make_socket):
    registry, dispatcher = _setup(make_socket)
    sender, other = make_socket(), make_socket()
    registry.register("a", Role.USER, sender)
    registry.register("b", Role.USER, other)

    asyncio.run(dispatcher.to_all_of_role(Role.USER, '{"hello": 1}', exclude=sender))

    assert sender.sent == []
    assert other.sent == ['{"hello": 1}']


def test_to_user(make_socket):
    registry, dispatcher = _setup(make_socket)
    alice, cam = make_socket(), make_socket()
    registry.register("alice", Role.USER, alice)
    registry.register("cam1", Role.CAMERA, cam)
    envelope = Envelope(type="notification", payload={"title": "Flood"})

    assert asyncio.run(dispatcher.to_user("alice", envelope)) is True
    assert alice.messages()[0]["payload"]["title"] == "Flood"

    # offline users and non-user roles are a no-op
    assert asyncio.run(dispatcher.to_user("bob", envelope)) is False
    assert asyncio.run(dispatcher.to_user("cam1", envelope)) is False
    assert cam.sent == []


def test_order_within_one_connection(make_socket):
    registry, dispatcher = _setup(make_socket)
    sock = make_socket()
    registry.register("u", Role.USER, sock)

    async def burst():
        for i in range(5):
            await dispatcher.broadcast("prediction", {"n": i})

    asyncio.run(burst())
    assert [m["payload"]["n"] for m in sock.messages()] == [0, 1, 2, 3, 4]
