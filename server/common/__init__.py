"""Code shared by every app: error taxonomy and input helpers."""
