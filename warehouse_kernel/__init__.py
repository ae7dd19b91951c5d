"""
Warehouse Kernel - inventory consistency and fulfillment workflows

A transactional warehouse core with:
- Non-negative stock ledger with append-only movement log
- Capacity-checked location occupancy
- Order, receiving and task lifecycle state machines
- Best-effort activity trail and change notifications
"""

__version__ = "0.1.0"
