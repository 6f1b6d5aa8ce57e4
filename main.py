"""
Main entry point for the recoder application.

This script configures logging, reads the settings from the environment and
the command line, verifies the external tools, and then either serves the
Telegram bot or processes a single video given with `--once`.
"""

import sys

from loguru import logger

from yt_recoder.cli import get_args
from yt_recoder.config.common import JOB_STATUS_DONE, JOB_STATUS_SKIPPED, LOGGER_FORMAT
from yt_recoder.config.settings import Settings
from yt_recoder.domain.exceptions import ConfigurationException
from yt_recoder.domain.job import EncodeStrategy
from yt_recoder.pipeline.job_pipeline import STATUS_HEADER, JobPipeline
from yt_recoder.services.chat_service import ChatBot, StatusMessageSink, extract_identifier
from yt_recoder.transport.console import ConsoleTransport
from yt_recoder.transport.telegram import TelegramTransport
from yt_recoder.utils.module_updater import Modules


# Configure the logger for initial setup.
# The level is overridden later by command-line arguments.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


def load_settings(args) -> Settings:
    settings = Settings.from_env()
    overrides = {}
    if args.strategy:
        overrides["encode_strategy"] = EncodeStrategy(args.strategy)
    if args.parallel_encoders:
        overrides["parallel_encoders"] = args.parallel_encoders
    return settings.model_copy(update=overrides) if overrides else settings


def run_once(pipeline: JobPipeline, target: str) -> int:
    """Processes one identifier or URL, printing progress. Returns the exit code."""
    identifier = extract_identifier(target) or target
    transport = ConsoleTransport()
    handle = transport.send_message(0, STATUS_HEADER)
    job = pipeline.run(identifier, sink=StatusMessageSink(transport, handle))
    if job.status in (JOB_STATUS_DONE, JOB_STATUS_SKIPPED):
        if job.output_path:
            logger.success(f"Recoded file: {job.output_path} ({job.elapsed:.1f}s since the request)")
        return 0
    logger.error(f"Job for {identifier} ended with status '{job.status}': {job.error}")
    return 1


def run_bot(pipeline: JobPipeline, settings: Settings) -> int:
    settings.require_bot()
    transport = TelegramTransport(settings.bot_token)
    bot = ChatBot(transport, pipeline, settings.authorized_user_ids)
    logger.info(f"Bot username: {transport.get_me().get('username')}")
    logger.info(f"Serving {len(settings.authorized_user_ids)} authorized user(s).")
    transport.poll_forever(bot)
    return 0


def main() -> int:
    args = get_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    try:
        settings = load_settings(args)
    except ConfigurationException as e:
        logger.error(str(e))
        return 1

    logger.info(f"Using {settings.parallel_encoders} parallel encoder(s), strategy '{settings.encode_strategy.value}'.")
    if settings.has_fetch_credentials:
        logger.info(f"Using {settings.fetch_user}'s account for downloads.")

    if not args.skip_tool_check and not Modules.run_all(settings.fetch_tool):
        logger.warning("Some external tools are missing; jobs needing them will fail.")

    with JobPipeline(settings) as pipeline:
        try:
            if args.once:
                return run_once(pipeline, args.once)
            return run_bot(pipeline, settings)
        except ConfigurationException as e:
            logger.error(str(e))
            return 1
        except KeyboardInterrupt:
            logger.info("Interrupted, waiting for running encoders to finish.")
            return 130


if __name__ == "__main__":
    sys.exit(main())
