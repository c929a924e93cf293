"""
Large DEX trade watcher.

An asynchronous bot that watches a live feed of Solana DEX trades,
evaluates the large ones for a profitable buy/sell pair, and stops
once a balance-based circuit breaker trips.
"""

__version__ = "1.0.0"
