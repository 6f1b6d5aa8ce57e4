"""
Runtime settings read once from the environment at startup.

`Settings` is immutable: it is built in `main.py`, then passed to the pipeline,
the fetcher and the chat bot. Nothing mutates it afterwards, so it can be read
from any thread without locking. Values come from environment variables, or
from a `.env` file in the working directory.
"""
from pathlib import Path
from typing import Annotated, Any, FrozenSet, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .common import (
    DEFAULT_FETCH_FORMAT,
    DEFAULT_FETCH_RETRIES,
    DEFAULT_FETCH_TOOL,
    DEFAULT_MAX_PENDING_JOBS,
    DEFAULT_PARALLEL_ENCODERS,
    FETCH_STALL_TIMEOUT,
    METADATA_READ_TIMEOUT,
)
from ..domain.exceptions import ConfigurationException
from ..domain.job import EncodeStrategy


def parse_user_ids(raw: str) -> FrozenSet[int]:
    """
    Parses a whitespace separated list of numeric user IDs.

    Raises:
        ValueError: If any entry is not an integer.
    """
    user_ids = set()
    for token in raw.split():
        try:
            user_ids.add(int(token))
        except ValueError:
            raise ValueError(f"non-numeric entry '{token}'")
    return frozenset(user_ids)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    # Chat bot
    bot_token: Optional[str] = Field(default=None, alias="BOT_ID")
    authorized_user_ids: Annotated[FrozenSet[int], NoDecode] = Field(default=frozenset(), alias="USER_IDS")

    # Encoders
    parallel_encoders: int = Field(default=DEFAULT_PARALLEL_ENCODERS, alias="PARALLEL_ENCODERS")
    encode_strategy: EncodeStrategy = Field(default=EncodeStrategy.CPU_TWO_PASS, alias="ENCODE_STRATEGY")
    max_pending_jobs: int = DEFAULT_MAX_PENDING_JOBS

    # Fetch tool
    fetch_user: Optional[str] = Field(default=None, alias="YT_USER")
    fetch_password: Optional[str] = Field(default=None, alias="YT_PASS")
    fetch_format: str = Field(default=DEFAULT_FETCH_FORMAT, alias="YT_FORMAT")
    fetch_tool: str = Field(default=DEFAULT_FETCH_TOOL, alias="FETCH_TOOL")
    fetch_retries: int = Field(default=DEFAULT_FETCH_RETRIES, alias="FETCH_RETRIES")
    stall_timeout: float = FETCH_STALL_TIMEOUT
    metadata_timeout: float = METADATA_READ_TIMEOUT
    download_dir: Optional[Path] = Field(default=None, alias="DOWNLOAD_DIR")

    @field_validator("authorized_user_ids", mode="before")
    @classmethod
    def _split_user_ids(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_user_ids(value)
        return value

    @field_validator("encode_strategy", mode="before")
    @classmethod
    def _normalise_strategy(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("parallel_encoders")
    @classmethod
    def _at_least_one_encoder(cls, value: int) -> int:
        return max(1, value)

    @field_validator("fetch_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        return max(0, value)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Builds the settings from the environment.

        Recognised variables: BOT_ID, USER_IDS, PARALLEL_ENCODERS, YT_USER,
        YT_PASS, YT_FORMAT, FETCH_TOOL, FETCH_RETRIES, DOWNLOAD_DIR and
        ENCODE_STRATEGY ('gpu' or 'cpu').

        Raises:
            ConfigurationException: If a value is malformed.
        """
        try:
            return cls()
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            raise ConfigurationException(f"Invalid configuration: {problems}")

    @property
    def has_fetch_credentials(self) -> bool:
        return bool(self.fetch_user and self.fetch_password)

    def require_bot(self) -> None:
        """
        Raises:
            ConfigurationException: If the bot token or the user list is missing.
        """
        if not self.bot_token or not self.authorized_user_ids:
            raise ConfigurationException("Please set BOT_ID and USER_IDS prior to running the bot.")
