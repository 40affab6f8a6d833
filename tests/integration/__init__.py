"""
Integration tests: SQLAlchemy storage on in-memory SQLite and the HTTP API
driven through FastAPI's TestClient.
"""
