"""
DuoSync config, loaded from env: load_postgres_config(), load_timeline_config().
"""
from duosync.config.postgres import PostgresConfig, load_postgres_config
from duosync.config.timeline import TimelineConfig, load_timeline_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "TimelineConfig",
    "load_timeline_config",
]
