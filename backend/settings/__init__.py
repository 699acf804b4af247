"""
Dynamic settings loader for the storefront project.
Selects environment settings based on the ``env`` variable.
"""
import os

DJANGO_ENV = os.getenv("env", "local").lower()

if DJANGO_ENV in ("prod", "production"):
    from .prod import *
elif DJANGO_ENV in ("local", "dev", "development"):
    from .local import *
elif DJANGO_ENV == "test":
    from .test import *
else:
    raise RuntimeError(f"Unknown env: {DJANGO_ENV}. Use 'local', 'test' or 'prod'.")
