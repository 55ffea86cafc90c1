"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real identity provider or database
os.environ.setdefault("IDENTITY_URL", "http://identity.test")
os.environ.setdefault("IDENTITY_API_KEY", "identity-test-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
