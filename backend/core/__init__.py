"""Core logic for indicator computation and signal decisions.

This package contains pure business logic with no I/O dependencies
(no network access, no event loop). The live service in app/ feeds it
closed candles and publishes what it decides.
"""
