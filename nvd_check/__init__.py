"""
@file __init__.py
@brief NVD dependency check package initialization

@details
This package contains all modules for the dependency vulnerability check,
organized by functional areas:
- core: Settings normalization, engine lifecycle, commands and CLI entry point
- caching: Constants and the local SQLite vulnerability store
- matching: Bundled analysis engine and its analyzers
- reporting: Report generation and console output formatting
"""

__version__ = "1.0.0"
