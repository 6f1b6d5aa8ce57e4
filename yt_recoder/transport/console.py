"""
A transport that prints to the terminal, used by the one-shot CLI mode.
"""

import itertools
import sys
from typing import Optional, TextIO

from ..services.chat_service import ChatTransport, MessageHandle


class ConsoleTransport(ChatTransport):
    """
    Prints sent messages, and for edits prints only the lines that were added
    since the previous version of the same message.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._ids = itertools.count(1)
        self._texts: dict = {}

    def send_message(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> MessageHandle:
        handle = MessageHandle(chat_id=chat_id, message_id=next(self._ids))
        self._texts[handle.message_id] = text
        self._write(text)
        return handle

    def edit_message(self, handle: MessageHandle, text: str) -> MessageHandle:
        previous = self._texts.get(handle.message_id, "")
        self._texts[handle.message_id] = text
        self._write(text[len(previous):] if text.startswith(previous) else text)
        return handle

    def _write(self, text: str):
        if not text:
            return
        self.stream.write(text if text.endswith("\n") else text + "\n")
        self.stream.flush()
