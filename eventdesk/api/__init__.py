"""API Layer: FastAPI routes and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Routes never contain business logic; they translate HTTP to EventDesk calls
"""
