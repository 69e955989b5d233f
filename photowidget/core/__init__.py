"""Core Application Layer:

Contains the fetch task, the enqueue/cancel service and the command
handler that the CLI delegates to.
"""
