"""dexsignal — DEX trading-pair signal classifier."""

__version__ = "0.3.0"
