"""Storage and versioning layer.

This package persists tables as chunked files under timestamp versions.
It powers writes, paginated reads, metadata rebuilds, and retention.
"""
