"""Domain layer (pure logic).

- Keep race rules, question generation and calculations here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no repositories.
- Prefer deterministic functions (time/random passed in as arguments if needed).
"""
