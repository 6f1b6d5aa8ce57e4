import pytest

from yt_recoder.services.chat_service import MessageHandle
from yt_recoder.transport.telegram import TelegramApiError, TelegramTransport


class FakeResponse:
    def __init__(self, data, status_code=200):
        self.data = data
        self.status_code = status_code

    def json(self):
        return self.data

    def raise_for_status(self):
        pass


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        return FakeResponse(self.responses.pop(0))


def test_send_message():
    session = FakeSession({"ok": True, "result": {"message_id": 5, "chat": {"id": 7}}})
    transport = TelegramTransport("TOKEN", session=session, base_url="https://api.example")

    handle = transport.send_message(7, "Hi!", reply_to=3)

    assert handle == MessageHandle(chat_id=7, message_id=5)
    url, payload, _ = session.posts[0]
    assert url == "https://api.example/botTOKEN/sendMessage"
    assert payload == {"chat_id": 7, "text": "Hi!", "reply_to_message_id": 3}


def test_send_message_omits_missing_reply():
    session = FakeSession({"ok": True, "result": {"message_id": 5, "chat": {"id": 7}}})

    TelegramTransport("T", session=session).send_message(7, "Hi!")

    assert "reply_to_message_id" not in session.posts[0][1]


def test_edit_message_keeps_handle_when_result_is_not_a_message():
    session = FakeSession({"ok": True, "result": True})
    handle = MessageHandle(chat_id=7, message_id=5)

    assert TelegramTransport("T", session=session).edit_message(handle, "text") == handle


def test_api_error():
    session = FakeSession({"ok": False, "description": "Bad Request: message is not modified"})

    with pytest.raises(TelegramApiError, match="not modified"):
        TelegramTransport("T", session=session).get_me()


def test_get_updates_uses_long_poll_timeout():
    session = FakeSession({"ok": True, "result": []})

    assert TelegramTransport("T", session=session).get_updates(offset=10, timeout=30) == []

    _, payload, http_timeout = session.posts[0]
    assert payload == {"offset": 10, "limit": 1, "timeout": 30}
    assert http_timeout == 40


def test_without_session_each_call_posts_directly(monkeypatch):
    fake = FakeSession(
        {"ok": True, "result": {"id": 1}},
        {"ok": True, "result": {"message_id": 5, "chat": {"id": 7}}},
    )
    monkeypatch.setattr("yt_recoder.transport.telegram.requests.post", fake.post)
    transport = TelegramTransport("T", base_url="https://api.example")

    transport.get_me()
    transport.send_message(7, "Hi!")

    assert [url for url, _, _ in fake.posts] == [
        "https://api.example/botT/getMe",
        "https://api.example/botT/sendMessage",
    ]


def test_to_incoming():
    update = {
        "update_id": 1,
        "message": {
            "message_id": 9,
            "from": {"id": 42, "first_name": "Ada"},
            "chat": {"id": 7},
            "text": "https://youtu.be/abc",
        },
    }

    message = TelegramTransport.to_incoming(update)

    assert message.sender_id == 42
    assert message.sender_name == "Ada"
    assert message.chat_id == 7
    assert message.message_id == 9
    assert message.text == "https://youtu.be/abc"


def test_to_incoming_ignores_non_messages():
    assert TelegramTransport.to_incoming({"update_id": 1, "edited_message": {}}) is None
