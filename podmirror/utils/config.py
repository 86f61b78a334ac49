# Copyright 2025 podmirror
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
from pathlib import Path
from typing import Any, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError

DEFAULT_FEED_URL = "https://feeds.acast.com/public/shows/5af195bb77c1746339e08ab6"
DEFAULT_TARGET_DIRECTORY = "episodes"
DEFAULT_CONCURRENCY_LIMIT = 50
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_READ_TIMEOUT_SECONDS = 60.0
DEFAULT_CHUNK_SIZE_BYTES = 8192

ENV_PREFIX = "PODMIRROR_"


class Config(BaseModel):
    # Source
    feed_url: str = DEFAULT_FEED_URL

    # Destination
    target_directory: Path = Path(DEFAULT_TARGET_DIRECTORY)

    # Download Configuration
    concurrency_limit: int = Field(default=DEFAULT_CONCURRENCY_LIMIT, ge=1)  # Max simultaneous transfers
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT_SECONDS, gt=0)
    read_timeout: float = Field(default=DEFAULT_READ_TIMEOUT_SECONDS, gt=0)  # Idle time between body chunks
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE_BYTES, ge=1)

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) timeout pair as accepted by requests"""
        return (self.connect_timeout, self.read_timeout)


def _env(name: str) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    return value if value else None


def load_config(env_file: Optional[str] = None, **overrides: Any) -> Config:
    """
    Load configuration from environment variables and .env file.

    Keyword overrides (e.g. from CLI options) win over the environment;
    overrides set to None are ignored.

    Raises:
        ConfigurationError: If any value fails validation
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config_data = {
        "feed_url": _env("FEED_URL"),
        "target_directory": _env("TARGET_DIRECTORY"),
        "concurrency_limit": _env("CONCURRENCY_LIMIT"),
        "connect_timeout": _env("CONNECT_TIMEOUT"),
        "read_timeout": _env("READ_TIMEOUT"),
        "chunk_size": _env("CHUNK_SIZE"),
    }
    # Options left unset on the command line arrive as None
    config_data.update({key: value for key, value in overrides.items() if value is not None})
    config_data = {key: value for key, value in config_data.items() if value is not None}

    try:
        return Config(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
