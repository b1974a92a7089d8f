"""
fp - fastpurchase command-line interface.

Usage:
    fp serve
    fp initdb
    fp createadmin <username> <email> --password
    fp seed
"""

from fastpurchase import __version__

__cli_name__ = "fp"

__all__ = ["__version__", "__cli_name__"]
