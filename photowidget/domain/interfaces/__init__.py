"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. The fetch task depends on these interfaces, not on the
scheduler, cache, HTTP client or state file behind them.
"""
