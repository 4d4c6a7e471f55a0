"""
Integration tests against SQLite through the real SQLAlchemy adapters.

- SQL booking repository and tour catalog
- Deadlock retry helper
- Health check endpoints

Run only these with:
    pytest tests/integration/
"""
