"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Storage provider over S3-compatible services (AWS S3, MinIO, R2)
- Metadata extraction (MIME type, file type, filename sanitizing)

Keep infrastructure concerns separate from business logic.
"""
