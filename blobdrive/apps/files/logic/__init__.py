"""Business logic layer for files app.

This package contains all business logic of the virtual filesystem:
- Object lifecycle: upload, download, folders, soft delete, restore,
  permanent delete, rename, copy, move
- Hierarchy projection: level listings, search, recycle bin, quota
- Tags kept in object metadata
- The FileRecord registry mirror

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).

Reference: https://github.com/dry-python
for decoupling business logic from Django views.
"""
