"""
The chat front-end of the recoder.

`ChatBot.handle_incoming_text()` is the single entry point for inbound chat
messages. It refuses unknown senders, answers `/start`, pulls a media
identifier out of a video link and hands it to the job pipeline. The status
message it sends back is then edited in place by the job's progress reporter.

The transport is abstract (`ChatTransport`); see `yt_recoder.transport` for
the Telegram and console implementations.
"""

from dataclasses import dataclass
from typing import Any, FrozenSet, Optional

from loguru import logger

from ..config.common import IDENTIFIER_URL_PREFIXES, VALID_ID_CHARACTERS
from ..pipeline.job_pipeline import STATUS_HEADER, JobPipeline


@dataclass
class IncomingMessage:
    sender_id: int
    chat_id: int
    text: str
    sender_name: str = ""
    message_id: Optional[int] = None


@dataclass
class MessageHandle:
    """Identifies a message the bot sent, so it can be edited later."""

    chat_id: int
    message_id: Any


class ChatTransport:
    """Outbound capability the bot needs from a chat service."""

    def send_message(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> MessageHandle:
        raise NotImplementedError("Subclasses must implement send_message.")

    def edit_message(self, handle: MessageHandle, text: str) -> MessageHandle:
        raise NotImplementedError("Subclasses must implement edit_message.")


def extract_identifier(text: str) -> str:
    """
    Returns the media identifier following the first known video URL prefix
    in `text`, or an empty string if there is none.
    """
    for prefix in IDENTIFIER_URL_PREFIXES:
        pos = text.find(prefix)
        if pos == -1:
            continue
        start = pos + len(prefix)
        end = start
        while end < len(text) and text[end] in VALID_ID_CHARACTERS:
            end += 1
        return text[start:end]
    return ""


def is_authorized(sender_id: int, authorized_ids: FrozenSet[int]) -> bool:
    return sender_id in authorized_ids


class StatusMessageSink:
    """
    Progress sink that keeps one chat message up to date.

    Each update replaces the text of the status message. The transport may
    return a new handle after an edit, so the latest one is kept.
    """

    def __init__(self, transport: ChatTransport, handle: MessageHandle):
        self.transport = transport
        self.handle = handle
        self._last_text: Optional[str] = None

    def __call__(self, text: str):
        if text == self._last_text:
            return
        self.handle = self.transport.edit_message(self.handle, text) or self.handle
        self._last_text = text


class ChatBot:
    """
    Routes inbound chat messages.

    Args:
        transport: Used to reply and to keep status messages updated.
        pipeline: Receives accepted jobs.
        authorized_ids: Senders the bot is allowed to serve.
    """

    def __init__(self, transport: ChatTransport, pipeline: JobPipeline, authorized_ids: FrozenSet[int]):
        self.transport = transport
        self.pipeline = pipeline
        self.authorized_ids = frozenset(authorized_ids)

    def handle_incoming_text(self, message: IncomingMessage):
        """
        Handles one inbound message.

        Returns:
            The pipeline Future when a job was scheduled for transcoding,
            otherwise None.
        """
        if not is_authorized(message.sender_id, self.authorized_ids):
            logger.warning(f"Refused message from {message.sender_name} ({message.sender_id}).")
            self.transport.send_message(
                message.chat_id,
                f"Sorry, {message.sender_name}. I'm not allowed to talk to strangers.",
            )
            return None

        text = message.text or ""
        if text.startswith("/"):
            return self._handle_command(message, text)

        identifier = extract_identifier(text)
        if not identifier:
            self.transport.send_message(message.chat_id, "Sorry, what?\n")
            return None

        logger.info(f"Received video url for ID={identifier}")
        handle = self.transport.send_message(message.chat_id, STATUS_HEADER, reply_to=message.message_id)
        sink = StatusMessageSink(self.transport, handle)
        return self.pipeline.submit(identifier, sink=sink)

    def _handle_command(self, message: IncomingMessage, text: str):
        command = text.split()[0].split("@")[0]
        if command == "/start":
            self.transport.send_message(message.chat_id, "Hi!")
        else:
            logger.debug(f"Ignoring command {command} from {message.sender_id}")
        return None
