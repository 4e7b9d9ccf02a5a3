"""CLI command implementations for cryptotrends.

Each command module provides:
- Configuration loading and validation
- Integration with core library functions
"""

from cryptotrends.commands.trends import load_trends_config

__all__ = [
    "load_trends_config",
]
