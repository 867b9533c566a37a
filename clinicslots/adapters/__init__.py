"""
Adapters layer - Schedule source and booking ledger implementations.
"""

from typing import Union

from ..config import DataSourceConfig
from .file_source import FileDataSource
from .http_source import HttpDataSource

DataSource = Union[FileDataSource, HttpDataSource]


def build_data_source(config: DataSourceConfig, default_timezone: str = "Europe/Berlin") -> DataSource:
    """Create the adapter selected by ``data_source.kind``."""
    if config.kind == "http":
        return HttpDataSource(
            base_url=config.base_url,
            api_token=config.api_token,
            timeout=config.timeout_seconds,
            default_timezone=default_timezone,
        )
    return FileDataSource(path=config.path, default_timezone=default_timezone)


__all__ = ["DataSource", "FileDataSource", "HttpDataSource", "build_data_source"]
