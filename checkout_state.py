"""
Checkout State Machine
======================
Formal state transitions for a single point-of-sale checkout.

    CART -> PAYMENT_SELECTION -> PAYMENT_PROCESSING -> SUCCESS -> CART
    PAYMENT_SELECTION -> CART                 (cancel)
    PAYMENT_PROCESSING -> PAYMENT_SELECTION   (order refused by the sink)

Cart edits are only legal in CART.
"""

import logging
from enum import Enum
from typing import Optional, Tuple
from datetime import datetime
from dataclasses import dataclass, field

from prometheus_client import Counter

logger = logging.getLogger(__name__)


checkout_transitions = Counter(
    'checkout_state_transitions_total',
    'Checkout state transitions',
    ['from_state', 'to_state']
)


class CheckoutState(Enum):
    CART = "cart"
    PAYMENT_SELECTION = "payment_selection"
    PAYMENT_PROCESSING = "payment_processing"
    SUCCESS = "success"


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass(frozen=True)
class Transition:
    source: Optional[CheckoutState]
    target: CheckoutState
    reason: Optional[str] = None
    at: datetime = field(default_factory=datetime.now)

    def to_dict(self):
        return {
            "from": self.source.value if self.source else None,
            "to": self.target.value,
            "reason": self.reason,
            "at": self.at.isoformat(),
        }


class CheckoutStateMachine:
    """
    Validated checkout transitions with a timestamped trail.

    PAYMENT_PROCESSING never returns to CART directly: a payment either
    completes or, when its order is refused, goes back to method selection.
    """

    VALID_TRANSITIONS = {
        CheckoutState.CART: {CheckoutState.PAYMENT_SELECTION},
        CheckoutState.PAYMENT_SELECTION: {CheckoutState.PAYMENT_PROCESSING, CheckoutState.CART},
        CheckoutState.PAYMENT_PROCESSING: {CheckoutState.SUCCESS, CheckoutState.PAYMENT_SELECTION},
        CheckoutState.SUCCESS: {CheckoutState.CART},
    }

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._trail = [Transition(None, CheckoutState.CART, reason="opened")]

    @property
    def current_state(self) -> CheckoutState:
        return self._trail[-1].target

    @property
    def history(self) -> Tuple[Transition, ...]:
        return tuple(self._trail)

    def can_transition_to(self, target_state: CheckoutState) -> bool:
        return target_state in self.VALID_TRANSITIONS[self.current_state]

    def transition(self, target_state: CheckoutState, reason: Optional[str] = None) -> bool:
        """
        Raises:
            StateTransitionError: If target_state is not reachable from here
        """
        source = self.current_state

        if not self.can_transition_to(target_state):
            raise StateTransitionError(
                f"Checkout {self.session_id}: cannot go {source.value} -> {target_state.value}"
            )

        self._trail.append(Transition(source, target_state, reason))
        checkout_transitions.labels(from_state=source.value, to_state=target_state.value).inc()

        logger.info(
            f"Checkout {self.session_id}: {source.value} -> {target_state.value}"
            + (f" ({reason})" if reason else "")
        )
        return True

    def is_editable(self) -> bool:
        return self.current_state == CheckoutState.CART

    def is_processing(self) -> bool:
        return self.current_state == CheckoutState.PAYMENT_PROCESSING

    def __repr__(self):
        return f"<CheckoutStateMachine {self.session_id} {self.current_state.value}>"
