from conftest import RecordingConnection
from realtime.registry import ConnectionRegistry, UserIdentity

ALICE = UserIdentity(id=1, name="Alice", email="a@x.com")


def test_register_starts_unjoined():
    registry = ConnectionRegistry()
    registry.register(RecordingConnection("c1"))

    assert registry.is_registered("c1")
    assert registry.get_identity("c1") is None
    assert registry.rooms_of("c1") == set()
    assert len(registry) == 1


def test_join_room_sets_identity_and_membership():
    registry = ConnectionRegistry()
    conn = RecordingConnection("c1")
    registry.register(conn)

    assert registry.join_room("c1", "r1", ALICE)
    assert registry.get_identity("c1") == ALICE
    assert registry.rooms_of("c1") == {"r1"}
    assert registry.members("r1") == [conn]


def test_join_same_room_twice_is_idempotent():
    registry = ConnectionRegistry()
    registry.register(RecordingConnection("c1"))
    registry.join_room("c1", "r1", ALICE)

    renamed = UserIdentity(id=1, name="Alice B", email="a@x.com")
    registry.join_room("c1", "r1", renamed)

    assert len(registry.members("r1")) == 1
    assert registry.get_identity("c1") == renamed


def test_connection_can_join_several_rooms():
    registry = ConnectionRegistry()
    registry.register(RecordingConnection("c1"))
    registry.join_room("c1", "r1", ALICE)
    registry.join_room("c1", "r2", ALICE)

    assert registry.rooms_of("c1") == {"r1", "r2"}


def test_join_room_for_unknown_connection_is_rejected():
    registry = ConnectionRegistry()

    assert registry.join_room("ghost", "r1", ALICE) is False
    assert registry.members("r1") == []


def test_unregister_returns_identity_and_clears_rooms():
    registry = ConnectionRegistry()
    registry.register(RecordingConnection("c1"))
    other = RecordingConnection("c2")
    registry.register(other)
    registry.join_room("c1", "r1", ALICE)
    registry.join_room("c2", "r1", UserIdentity(id=2, name="Bob", email="b@x.com"))

    assert registry.unregister("c1") == ALICE
    assert not registry.is_registered("c1")
    assert registry.members("r1") == [other]
    assert registry.connections() == [other]


def test_unregister_unjoined_or_unknown_returns_none():
    registry = ConnectionRegistry()
    registry.register(RecordingConnection("c1"))

    assert registry.unregister("c1") is None
    assert registry.unregister("c1") is None


def test_user_identity_from_payload():
    identity = UserIdentity.from_payload({"id": 7, "name": "Zed", "email": "z@x.com"})

    assert identity.to_dict() == {"id": 7, "name": "Zed", "email": "z@x.com"}
