"""
Core business layer.

This package holds everything that mutates or serializes draft state:
- State machine: the single table of legal status transitions
- Draft manager: the serialized entry point for every draft operation
- Locks: per-draft critical sections and row locks
- Broadcaster: per-draft pub/sub channels
- Pick timers: per-draft auto-pick deadlines
"""
