from __future__ import annotations


class AssetScanError(Exception):
    """Base class for errors raised by the scanner."""


class ConfigError(AssetScanError):
    """A tsconfig/jsconfig file exists but cannot be used."""


class ParseError(AssetScanError):
    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(message)
        self.source_name = source_name
