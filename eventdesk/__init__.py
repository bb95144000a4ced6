"""EventDesk: event, attendee and inventory store with flat-file persistence.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
