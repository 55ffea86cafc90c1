"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure; randomness and time are passed in by the caller

Design Decisions:
    - Functional core separated from imperative shell: state machines are tables and
      predicates here, the shell performs the conditional writes around them
"""
