"""Domain Events.

Contains definitions for events emitted by the work scheduler.
"""
