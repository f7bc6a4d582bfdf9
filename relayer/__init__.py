"""
Order book relayer.

Stores signed orders and liquidity offers, serves order books and
filtered queries over them, and streams book updates to subscribers.
"""

__version__ = "1.0.0"
