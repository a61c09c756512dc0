"""Business logic layer for files app.

This package contains all business logic for the library:
- Folder tree management
- File upload and link registration, update and delete
- Role based visibility and listing criteria
- Tag registry
- Read-side projections for display

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
