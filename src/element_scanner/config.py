"""
Configuration management using Pydantic Settings.

Settings are read from environment variables (prefix ELEMENT_SCANNER_)
and an optional .env file. They control the upstream SAX reader features
and the tree-building policy applied to matched subtrees:
- Namespace processing and validation of the upstream reader
- External entity expansion
- Whitespace, comment and processing-instruction handling in built elements
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScannerSettings(BaseSettings):
    """
    Parsing and building options for ElementScanner.

    Environment Variables (from .env):
        ELEMENT_SCANNER_NAMESPACES: Enable SAX namespace processing
        ELEMENT_SCANNER_VALIDATION: Ask the reader to validate against the DTD
        ELEMENT_SCANNER_EXPAND_ENTITIES: Resolve external general entities
        ELEMENT_SCANNER_IGNORE_WHITESPACE: Drop ignorable whitespace
        ELEMENT_SCANNER_REMOVE_BLANK_TEXT: Drop whitespace-only text runs
        ELEMENT_SCANNER_INSERT_COMMENTS: Keep comments in built elements
        ELEMENT_SCANNER_INSERT_PIS: Keep processing instructions in built elements

    Example:
        >>> settings = ScannerSettings(remove_blank_text=True)
        >>> settings.namespaces
        True
        >>> settings.remove_blank_text
        True
    """

    namespaces: bool = Field(
        default=True,
        description="Enable namespace processing in the upstream SAX reader"
    )

    validation: bool = Field(
        default=False,
        description="Request DTD validation from the upstream SAX reader"
    )

    expand_entities: bool = Field(
        default=False,
        description="Resolve external general entities"
    )

    ignore_whitespace: bool = Field(
        default=False,
        description="Drop ignorable whitespace reported by validating readers"
    )

    remove_blank_text: bool = Field(
        default=False,
        description="Drop whitespace-only text runs between markup in built elements"
    )

    insert_comments: bool = Field(
        default=True,
        description="Keep comments found inside matched elements"
    )

    insert_pis: bool = Field(
        default=True,
        description="Keep processing instructions found inside matched elements"
    )

    model_config = SettingsConfigDict(
        env_prefix='ELEMENT_SCANNER_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )


# Singleton pattern - loaded once, cached forever
_settings: Optional[ScannerSettings] = None


def get_settings() -> ScannerSettings:
    """
    Get global scanner settings instance (lazy-loaded singleton).

    Settings are loaded from environment variables and .env file on first
    access and cached afterwards. Pass an explicit ScannerSettings to
    ElementScanner to bypass the global instance.

    Returns:
        Singleton ScannerSettings instance

    Example:
        >>> settings = get_settings()
        >>> settings2 = get_settings()
        >>> settings is settings2  # Same instance
        True
    """
    global _settings
    if _settings is None:
        _settings = ScannerSettings()
    return _settings
