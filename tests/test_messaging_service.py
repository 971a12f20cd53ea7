import pytest

from app.core.exceptions import UserNotFound, ValidationFailed
from app.services.messaging_service import MessagingService


@pytest.fixture
def service(repo):
    return MessagingService(repo)


def test_send_and_read_conversation(service, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")

    service.send_message(alice.id, bob.id, "  Hi Bob  ")
    service.send_message(bob.id, alice.id, "Hi Alice")

    thread = service.conversation(alice.id, bob.id)
    assert [m.content for m in thread] == ["Hi Bob", "Hi Alice"]
    assert service.conversation(bob.id, alice.id) == thread


def test_send_validation(service, make_user):
    alice = make_user()
    with pytest.raises(ValidationFailed):
        service.send_message(alice.id, alice.id, "talking to myself")
    with pytest.raises(ValidationFailed):
        service.send_message(alice.id, alice.id, "   ")
    with pytest.raises(UserNotFound):
        service.send_message(alice.id, "nobody", "hello?")


def test_conversations_and_unread(service, make_user):
    alice, bob, carol = make_user("Alice"), make_user("Bob"), make_user("Carol")
    service.send_message(bob.id, alice.id, "one")
    service.send_message(bob.id, alice.id, "two")
    service.send_message(alice.id, carol.id, "hey carol")

    summaries = service.conversations(alice.id)
    assert [s["otherUser"].id for s in summaries] == [carol.id, bob.id]
    assert summaries[1]["lastMessage"].content == "two"
    assert summaries[1]["unreadCount"] == 2
    assert summaries[0]["unreadCount"] == 0
    assert service.unread_count(alice.id) == 2

    assert service.mark_as_read(alice.id, bob.id) == 2
    assert service.unread_count(alice.id) == 0
    assert service.mark_as_read(alice.id, bob.id) == 0
