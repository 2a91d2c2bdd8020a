"""
Configuration for the travel planner API.

Values come from the process environment, optionally seeded from
.env.{APP_ENV} next to this file. APP_ENV is one of development, test
or production.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Union
from urllib.parse import quote_plus

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EnvironmentMode = Literal["development", "test", "production"]
MODES = ("development", "test", "production")


def get_environment_mode() -> EnvironmentMode:
    """APP_ENV, falling back to development for unset or unknown values"""
    mode = os.getenv('APP_ENV', 'development').lower()
    return mode if mode in MODES else 'development'  # type: ignore


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Seed os.environ from the dotenv file of the given mode.

    The mode defaults to APP_ENV. .env.{mode} is preferred over a plain
    .env; variables already present in the environment are never replaced.
    Returns the mode that was used.
    """
    mode = mode or get_environment_mode()
    root = Path(__file__).parent

    for candidate in (root / f'.env.{mode}', root / '.env'):
        if candidate.exists():
            logger.info(f"Reading settings from {candidate.name}")
            load_dotenv(candidate, override=False)
            break
    else:
        logger.debug(f"No dotenv file for mode '{mode}'")

    return mode


@dataclass
class DatabaseConfig:
    """Connection and pool settings for PostgreSQL"""

    host: str
    port: int
    database: str
    user: str
    password: str

    min_pool_size: int = 1
    max_pool_size: int = 10
    command_timeout: int = 60  # seconds, per statement

    ssl_mode: str = "prefer"  # disable | prefer | require

    @property
    def asyncpg_dsn(self) -> str:
        user = quote_plus(self.user)
        password = quote_plus(self.password)
        return f"postgresql://{user}:{password}@{self.host}:{self.port}/{self.database}"

    @property
    def asyncpg_ssl(self) -> Union[bool, str]:
        """ssl argument for asyncpg.create_pool"""
        if self.ssl_mode == 'require':
            return True
        if self.ssl_mode == 'disable':
            return False
        return 'prefer'

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Build the config for a mode.

        Reads DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, DB_SSL_MODE,
        DB_MIN_POOL_SIZE, DB_MAX_POOL_SIZE and DB_COMMAND_TIMEOUT. The
        database name defaults to travel_planner (travel_planner_test in
        test mode); production defaults to ssl_mode=require.
        """
        mode = load_app_environment(mode)

        env = os.getenv
        config = cls(
            host=env('DB_HOST', 'localhost'),
            port=int(env('DB_PORT', '5432')),
            database=env('DB_NAME', 'travel_planner_test' if mode == 'test' else 'travel_planner'),
            user=env('DB_USER', 'postgres'),
            password=env('DB_PASSWORD', ''),
            min_pool_size=int(env('DB_MIN_POOL_SIZE', '1')),
            max_pool_size=int(env('DB_MAX_POOL_SIZE', '10')),
            command_timeout=int(env('DB_COMMAND_TIMEOUT', '60')),
            ssl_mode=env('DB_SSL_MODE', 'require' if mode == 'production' else 'prefer'),
        )
        config.validate_safety(mode)
        return config

    def validate_safety(self, mode: str):
        """Test runs truncate tables, so they may only touch a *test* database"""
        if mode != 'test':
            return
        if 'test' not in self.database or 'prod' in self.database:
            raise ValueError(
                f"SAFETY ERROR: test mode refuses database '{self.database}'; "
                f"its name must contain 'test' and must not look like production"
            )


@dataclass(frozen=True)
class TableConfig:
    """
    Physical table naming.

    Entity configs refer to logical table names ("category", "translation").
    The suffix redirects every read and write to a parallel set of tables
    (e.g. "category_test") without touching the entity registry. Queries
    always alias the physical table back to its logical name, so join
    conditions written against logical names keep working.
    """
    suffix: str = ""

    def physical(self, table: str) -> str:
        return f"{table}{self.suffix}"

    @classmethod
    def from_environment(cls) -> 'TableConfig':
        """Read DB_TABLE_SUFFIX (default: no suffix)"""
        return cls(suffix=os.getenv('DB_TABLE_SUFFIX', ''))


@dataclass
class HttpConfig:
    """HTTP server binding"""
    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'HttpConfig':
        load_app_environment(mode)
        return cls(
            host=os.getenv('HTTP_HOST', '127.0.0.1'),
            port=int(os.getenv('HTTP_PORT', '8080')),
        )
