"""Point-in-time mark-to-market valuation of FX hedge portfolios."""

__version__ = "0.1.0"
