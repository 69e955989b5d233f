"""Image Cache Implementation.

Provides the concrete ImageCache: an in-memory L1 path map in front of an
L2 `diskcache` store holding the image files.
Bounded Context: Cache Management
"""
