"""
runtime.py - Clock, Value Book and Atomic Operation Scope

The Runtime is the execution environment every component is attached to.

Key responsibilities:
    - Tracks logical time (advance only, never backwards)
    - Holds native value balances per address and moves them with Transfer records
    - Invokes receiver hooks after crediting an address (refusal or re-entry)
    - Provides atomic(): every state change made inside the scope, across all
      attached components, is undone if the scope raises
    - Always logs transfers - the transfer log is the audit trail
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol, Tuple
import copy

from .core import (
    Transfer, Receiver,
    SYSTEM_ADDRESS,
    InsufficientFunds,
    require_address, require_amount,
)


class Stateful(Protocol):
    """A component whose mutable state can be captured and put back."""

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class Runtime:
    """
    Single-threaded execution environment with all-or-nothing operations.

    Design Principles:
        - One clock read per operation: components call current_time once at the
          top of each entry point.
        - Atomic scopes nest; an inner scope that fails restores only what it
          changed, the outer scope decides for itself.
        - SYSTEM_ADDRESS is the source of externally funded value and is exempt
          from balance checks, so the sum over all balances is always zero.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Runtime instance.

    Example:
        runtime = Runtime(initial_time=1_700_000_000, verbose=False)
        runtime.fund("alice", 10**18)
        with runtime.atomic():
            runtime.transfer_value("alice", "bob", 10**17, "payment")
    """

    def __init__(self, initial_time: int = 0, verbose: bool = True):
        """
        Create a runtime.

        Args:
            initial_time: Starting time in seconds (default: 0)
            verbose: Print a line for every transfer (default: True)
        """
        self._current_time: int = initial_time
        self.verbose = verbose
        self.balances: Dict[str, int] = {}
        self.transfer_log: List[Transfer] = []
        self._receivers: Dict[str, Receiver] = {}
        self._components: List[Stateful] = []
        self._depth: int = 0

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time in seconds."""
        return self._current_time

    def advance_time(self, new_time: int) -> None:
        """
        Move the clock to new_time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def advance(self, seconds: int) -> int:
        """Advance the clock by a number of seconds and return the new time."""
        self.advance_time(self._current_time + seconds)
        return self._current_time

    # ========================================================================
    # COMPONENTS AND RECEIVERS
    # ========================================================================

    def attach(self, component: Stateful) -> None:
        """Include a component's state in every atomic scope."""
        if any(c is component for c in self._components):
            raise ValueError(f"{component!r} is already attached")
        self._components.append(component)

    def register_receiver(self, address: str, receiver: Receiver) -> None:
        """Install a hook called after address is credited."""
        self._receivers[require_address(address)] = receiver

    def remove_receiver(self, address: str) -> None:
        self._receivers.pop(address, None)

    # ========================================================================
    # VALUE BOOK
    # ========================================================================

    def balance_of(self, address: str) -> int:
        """Native value held by an address (0 if never seen)."""
        return self.balances.get(address, 0)

    def fund(self, address: str, amount: int) -> Transfer:
        """Credit an address with value from outside the system."""
        return self.transfer_value(SYSTEM_ADDRESS, address, amount, "fund")

    def transfer_value(self, source: str, dest: str, amount: int, memo: str) -> Transfer:
        """
        Move value from source to dest and log it.

        The receiver hook of dest (if any) runs after the balances are updated.
        Anything it raises propagates to the caller.

        Raises:
            InsufficientFunds: If source (other than SYSTEM_ADDRESS) holds less than amount
            InputError: If amount is not a positive int or an address is invalid
        """
        require_amount(amount)
        require_address(source, "source")
        require_address(dest, "dest")

        available = self.balance_of(source)
        if source != SYSTEM_ADDRESS and available < amount:
            raise InsufficientFunds(
                f"{source} holds {available}, cannot transfer {amount} ({memo})"
            )

        transfer = Transfer(
            amount=amount,
            source=source,
            dest=dest,
            memo=memo,
            sequence=len(self.transfer_log),
            timestamp=self._current_time,
        )
        self.balances[source] = available - amount
        self.balances[dest] = self.balance_of(dest) + amount
        self.transfer_log.append(transfer)

        if self.verbose:
            print(f"  ↳ {transfer!r}")

        receiver = self._receivers.get(dest)
        if receiver is not None:
            receiver(transfer)
        return transfer

    def total_value(self) -> int:
        """Sum of all balances; zero whenever value is conserved."""
        return sum(self.balances[a] for a in sorted(self.balances))

    def transfers_for(self, address: str) -> List[Transfer]:
        """Every logged transfer touching an address, in log order."""
        return [t for t in self.transfer_log if address in (t.source, t.dest)]

    # ========================================================================
    # ATOMIC SCOPE
    # ========================================================================

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def snapshot(self) -> Tuple[Dict[str, int], int, List[Any]]:
        """Capture balances, log length and the state of every attached component."""
        return (
            dict(self.balances),
            len(self.transfer_log),
            [copy.deepcopy(c.snapshot()) for c in self._components],
        )

    def restore(self, snapshot: Tuple[Dict[str, int], int, List[Any]]) -> None:
        balances, log_length, states = snapshot
        self.balances = dict(balances)
        del self.transfer_log[log_length:]
        for component, state in zip(self._components, states):
            component.restore(state)

    @contextmanager
    def atomic(self) -> Iterator['Runtime']:
        """
        All-or-nothing scope.

        If the body raises, balances, the transfer log and every attached
        component are put back exactly as they were on entry, then the
        exception propagates unchanged.
        """
        saved = self.snapshot()
        self._depth += 1
        try:
            yield self
        except BaseException:
            self.restore(saved)
            if self.verbose:
                print("✗ ROLLED BACK")
            raise
        finally:
            self._depth -= 1
