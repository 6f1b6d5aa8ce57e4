"""
Telegram Bot API transport.

A thin client over the HTTP Bot API using `requests`: long polling for
updates, sending replies and editing status messages. Updates are handled one
at a time; the job pipeline returns as soon as a fetch has finished, so a slow
transcode never blocks the poll loop.
"""

import time
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from ..services.chat_service import ChatBot, ChatTransport, IncomingMessage, MessageHandle

API_BASE_URL = "https://api.telegram.org"
POLL_TIMEOUT_SECONDS = 30
RETRY_DELAY_SECONDS = 5.0


class TelegramApiError(Exception):
    """Raised when the Bot API answers with `ok: false`."""

    pass


class TelegramTransport(ChatTransport):
    """
    Telegram Bot API over HTTP.

    Progress edits arrive from encoder threads while `poll_forever` long-polls,
    so by default every call is a standalone `requests.post`. A `session`, if
    given, must be safe to use from those threads.
    """

    def __init__(self, token: str, session: Optional[requests.Session] = None, base_url: str = API_BASE_URL):
        self._url = f"{base_url}/bot{token}"
        self._session = session

    def _call(self, method: str, http_timeout: float = 30, **params) -> Any:
        payload = {key: value for key, value in params.items() if value is not None}
        http = self._session if self._session is not None else requests
        response = http.post(f"{self._url}/{method}", json=payload, timeout=http_timeout)
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramApiError(f"{method}: non-JSON response (HTTP {response.status_code})")
        if not data.get("ok"):
            raise TelegramApiError(f"{method}: {data.get('description', 'unknown error')}")
        return data.get("result")

    def get_me(self) -> Dict[str, Any]:
        return self._call("getMe")

    def get_updates(self, offset: Optional[int] = None, timeout: int = POLL_TIMEOUT_SECONDS) -> List[Dict[str, Any]]:
        return self._call("getUpdates", http_timeout=timeout + 10, offset=offset, limit=1, timeout=timeout) or []

    def send_message(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> MessageHandle:
        result = self._call("sendMessage", chat_id=chat_id, text=text, reply_to_message_id=reply_to)
        return MessageHandle(chat_id=result["chat"]["id"], message_id=result["message_id"])

    def edit_message(self, handle: MessageHandle, text: str) -> MessageHandle:
        result = self._call("editMessageText", chat_id=handle.chat_id, message_id=handle.message_id, text=text)
        if isinstance(result, dict) and "message_id" in result:
            return MessageHandle(chat_id=result["chat"]["id"], message_id=result["message_id"])
        return handle

    @staticmethod
    def to_incoming(update: Dict[str, Any]) -> Optional[IncomingMessage]:
        """Converts an update to an `IncomingMessage`, or None if it carries no text message."""
        message = update.get("message")
        if not message or "from" not in message:
            return None
        sender = message["from"]
        return IncomingMessage(
            sender_id=sender["id"],
            sender_name=sender.get("first_name", ""),
            chat_id=message["chat"]["id"],
            message_id=message.get("message_id"),
            text=message.get("text", ""),
        )

    def poll_forever(self, bot: ChatBot):
        """
        Long-polls for updates and passes each message to `bot`.

        Network and API errors are logged and the poll is retried after a
        short delay. Errors raised while handling one message are logged and
        do not stop the loop.
        """
        offset: Optional[int] = None
        logger.info("Long poll started...")
        while True:
            try:
                updates = self.get_updates(offset)
            except (requests.RequestException, TelegramApiError) as e:
                logger.error(f"getUpdates failed: {e}. Retrying in {RETRY_DELAY_SECONDS:.0f}s")
                time.sleep(RETRY_DELAY_SECONDS)
                continue

            for update in updates:
                offset = update["update_id"] + 1
                incoming = self.to_incoming(update)
                if incoming is None:
                    continue
                try:
                    bot.handle_incoming_text(incoming)
                except (requests.RequestException, TelegramApiError) as e:
                    logger.error(f"Could not answer message from {incoming.sender_id}: {e}")
                except Exception:
                    logger.exception(f"Unexpected error while handling message from {incoming.sender_id}")
