"""Arq worker settings."""

from arq.connections import RedisSettings

from quotedoc.config import get_settings

settings = get_settings()

# Accepts redis://[user:password@]host:port/db
redis_settings = RedisSettings.from_dsn(settings.redis_url)
