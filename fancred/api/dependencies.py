"""FastAPI dependencies for dependency injection."""

from fancred.config import Config
from fancred.datasources import HoldingsReader
from fancred.services import ActivityStore

# Global instances - initialized at app startup
_reader: HoldingsReader | None = None
_store: ActivityStore | None = None
_config: Config | None = None


def set_holdings_reader(reader: HoldingsReader) -> None:
    """Set the global holdings reader instance."""
    global _reader
    _reader = reader


def set_activity_store(store: ActivityStore) -> None:
    """Set the global activity store instance."""
    global _store
    _store = store


def set_config(config: Config) -> None:
    """Set the global configuration."""
    global _config
    _config = config


def get_holdings_reader() -> HoldingsReader:
    """Get the global holdings reader for dependency injection."""
    if _reader is None:
        raise RuntimeError("HoldingsReader not initialized. Call set_holdings_reader() first.")
    return _reader


def get_activity_store() -> ActivityStore:
    """Get the global activity store for dependency injection."""
    if _store is None:
        raise RuntimeError("ActivityStore not initialized. Call set_activity_store() first.")
    return _store


def get_config() -> Config:
    """Get the global configuration for dependency injection."""
    if _config is None:
        raise RuntimeError("Config not initialized. Call set_config() first.")
    return _config
