"""Stellar Wrap: soulbound token minting with transaction lifecycle tracking."""

__version__ = "0.1.0"
