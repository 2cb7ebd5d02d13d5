"""Operating system interfaces.

Processes that tubes can talk to, and the timing functions tube waits are built on.
"""
