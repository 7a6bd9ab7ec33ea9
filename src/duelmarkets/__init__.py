"""Duel markets - LMSR pricing, quoting, settlement and tournament resolution."""

__version__ = "0.1.0"
