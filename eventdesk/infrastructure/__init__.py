"""Infrastructure Layer: file persistence and cross-cutting concerns.

Invariants:
    - Infrastructure never contains domain rules; it encodes, decodes, reads and writes
"""
