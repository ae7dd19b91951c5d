"""
Lifecycle state machines (``warehouse_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing the order, receiving and task lifecycles, and
the single check every service runs before changing a status.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* A status change that is not an edge of the graph raises
  ``InvalidTransitionError``; the caller's state is untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from warehouse_kernel.domain.dtos import OrderStatus, ReceivingStatus, TaskStatus
from warehouse_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    ``moves_stock=True`` marks the transitions that mutate the stock ledger
    inside the same atomic unit as the status change.
    """
    from_state: str
    to_state: str
    action: str
    moves_stock: bool = False


@dataclass(frozen=True)
class Workflow:
    """A lifecycle definition.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} has outgoing transition"
                )

    def find(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def targets(self, from_state: str) -> frozenset[str]:
        """States reachable in one step from ``from_state``."""
        return frozenset(
            t.to_state for t in self.transitions if t.from_state == from_state
        )

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def require(
        self,
        entity_type: str,
        entity_id: object,
        from_state: str,
        to_state: str,
    ) -> Transition:
        """Return the transition for ``from_state -> to_state`` or raise.

        Raises:
            InvalidTransitionError: the move is not an edge of the graph.
        """
        transition = self.find(from_state, to_state)
        if transition is None:
            allowed = sorted(self.targets(from_state))
            raise InvalidTransitionError(
                entity_type,
                str(entity_id),
                from_state,
                to_state,
                reason=(
                    f"allowed targets: {', '.join(allowed)}"
                    if allowed
                    else f"{from_state} is terminal"
                ),
            )
        return transition


# ---------------------------------------------------------------------------
# Order fulfillment
# ---------------------------------------------------------------------------

_O = OrderStatus

ORDER_WORKFLOW = Workflow(
    name="order_fulfillment",
    description="Pending -> Picking -> Packed -> Shipped -> Delivered, cancellable before packing",
    initial_state=_O.PENDING.value,
    states=tuple(s.value for s in _O),
    transitions=(
        Transition(_O.PENDING.value, _O.PICKING.value, action="start_picking"),
        Transition(_O.PENDING.value, _O.CANCELLED.value, action="cancel"),
        Transition(_O.PICKING.value, _O.PACKED.value, action="pack"),
        Transition(_O.PICKING.value, _O.CANCELLED.value, action="cancel"),
        Transition(_O.PACKED.value, _O.SHIPPED.value, action="ship", moves_stock=True),
        Transition(_O.SHIPPED.value, _O.DELIVERED.value, action="deliver"),
    ),
    terminal_states=(_O.DELIVERED.value, _O.CANCELLED.value),
)

# Soft deletion is allowed only while nothing has left the warehouse.
ORDER_DELETABLE_STATES: frozenset[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.PICKING,
    OrderStatus.PACKED,
    OrderStatus.CANCELLED,
})

# ---------------------------------------------------------------------------
# Receiving
# ---------------------------------------------------------------------------

_R = ReceivingStatus

RECEIVING_WORKFLOW = Workflow(
    name="receiving",
    description="Pending -> Completed (stock in) or Cancelled",
    initial_state=_R.PENDING.value,
    states=tuple(s.value for s in _R),
    transitions=(
        Transition(_R.PENDING.value, _R.COMPLETED.value, action="complete", moves_stock=True),
        Transition(_R.PENDING.value, _R.CANCELLED.value, action="cancel"),
    ),
    terminal_states=(_R.COMPLETED.value, _R.CANCELLED.value),
)

RECEIVING_DELETABLE_STATES: frozenset[ReceivingStatus] = frozenset({
    ReceivingStatus.PENDING,
    ReceivingStatus.CANCELLED,
})

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

_T = TaskStatus

TASK_WORKFLOW = Workflow(
    name="task",
    description="Pending -> InProgress -> Completed, cancellable until completion",
    initial_state=_T.PENDING.value,
    states=tuple(s.value for s in _T),
    transitions=(
        Transition(_T.PENDING.value, _T.IN_PROGRESS.value, action="start"),
        Transition(_T.PENDING.value, _T.CANCELLED.value, action="cancel"),
        Transition(_T.IN_PROGRESS.value, _T.COMPLETED.value, action="complete"),
        Transition(_T.IN_PROGRESS.value, _T.CANCELLED.value, action="cancel"),
    ),
    terminal_states=(_T.COMPLETED.value, _T.CANCELLED.value),
)
