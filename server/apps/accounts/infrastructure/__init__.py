"""Infrastructure layer for accounts app.

This package contains integrations with external systems:
- Outgoing e-mail through Django's mail framework
"""
