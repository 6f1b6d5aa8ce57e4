"""
Chat transports for the recoder.

- telegram.py: `TelegramTransport`, the Telegram Bot API over `requests`,
  including the long-poll loop that feeds `ChatBot`.
- console.py: `ConsoleTransport`, which prints status updates to the terminal.
"""
