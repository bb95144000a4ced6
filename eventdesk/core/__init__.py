"""Core Layer: pure domain logic, no IO, no async.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or schemas/
    - Cross-collection mutations go through AllocationEngine and ReferentialIntegrityCoordinator
"""
