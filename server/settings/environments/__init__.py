"""Environment specific overrides, selected by ``DJANGO_ENV``."""
