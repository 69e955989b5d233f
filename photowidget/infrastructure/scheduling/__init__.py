"""Work Scheduling.

In-process retry-scheduler with unique work names, tag cancellation,
exponential backoff and an optional persisted queue.
Bounded Context: Work Scheduling
"""
