from app.services.connection_registry import ConnectionRegistry, Role


def test_register_and_find(make_socket):
    registry = ConnectionRegistry()
    sock = make_socket()
    registry.register("alice", Role.USER, sock)

    assert registry.find_by_id("alice") is sock
    assert registry.find_by_id("bob") is None
    assert len(registry) == 1


def test_duplicate_id_last_writer_wins(make_socket):
    registry = ConnectionRegistry()
    first, second = make_socket(), make_socket()
    registry.register("alice", Role.USER, first)
    registry.register("alice", Role.USER, second)

    assert registry.find_by_id("alice") is second
    assert len(registry) == 1

    # closing the replaced socket must not evict the live one
    assert registry.unregister(first) is None
    assert registry.find_by_id("alice") is second


def test_unregister_is_idempotent(make_socket):
    registry = ConnectionRegistry()
    sock = make_socket()
    registry.register("cam1", Role.CAMERA, sock)

    conn = registry.unregister(sock)
    assert conn.id == "cam1"
    assert conn.role == Role.CAMERA
    assert registry.unregister(sock) is None
    assert registry.find_by_id("cam1") is None


def test_find_by_role(make_socket):
    registry = ConnectionRegistry()
    u1, u2, cam, peer = make_socket(), make_socket(), make_socket(), make_socket()
    registry.register("u1", Role.USER, u1)
    registry.register("u2", Role.USER, u2)
    registry.register("cam1", Role.CAMERA, cam)
    registry.register("p1", Role.SIGNALING_PEER, peer)

    users = registry.find_by_role(Role.USER)
    assert len(users) == 2
    assert u1 in users and u2 in users
    assert registry.find_by_role(Role.CAMERA) == [cam]
    assert registry.count_by_role() == {"user": 2, "camera": 1, "signaling-peer": 1}


def test_same_socket_new_identity(make_socket):
    registry = ConnectionRegistry()
    sock = make_socket()
    registry.register("old", Role.SIGNALING_PEER, sock)
    registry.register("new", Role.SIGNALING_PEER, sock)

    assert registry.find_by_id("old") is None
    assert registry.connection_for(sock).id == "new"
    assert len(registry) == 1
