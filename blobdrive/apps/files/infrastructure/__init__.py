"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Tenant-scoped S3-compatible storage backend (buckets, objects, listings)
- Request signing and presigned read URLs
- Object key conventions and the object metadata channel

Keep infrastructure concerns separate from business logic.
"""
