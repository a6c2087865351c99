"""
Payment execution engine.

Drives one payment attempt through network switch, optional approval,
submission and confirmation:

    idle -> switching_network -> approving -> sending -> confirming -> success
                                                                     -> failed
                                                                     -> timed_out

Single-transaction routes are executed directly; multi-leg routes are
delegated to the LI.FI route driver. Every run resolves to a terminal state.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from ...logging_config import bind_payment_context, clear_payment_context
from .amounts import decimal_to_str, from_base_units
from .approval import ApprovalManager
from .chain_registry import ChainRegistry, get_chain_registry
from .driver import ExecutionHooks, LifiRouteDriver
from .errors import (
    ConfirmationTimeoutError,
    ExecutionInProgressError,
    InvalidTransitionError,
    PaymentError,
    WalletInteractionError,
)
from .models import (
    ExecutionEvent,
    ExecutionResult,
    ExecutionState,
    PaymentRecord,
    PaymentStatus,
    RouteOption,
    StepStatus,
    StepType,
)
from .progress import ProgressTracker
from .records import PaymentRecordSink
from .wallet import WalletClient


logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Transaction failed"

ExecutionListener = Callable[[ExecutionEvent], Any]

MAIN_STEP_TYPES = (StepType.SWAP, StepType.BRIDGE, StepType.TRANSFER)

_FORWARD_ORDER = [
    ExecutionState.IDLE,
    ExecutionState.SWITCHING_NETWORK,
    ExecutionState.APPROVING,
    ExecutionState.SENDING,
    ExecutionState.CONFIRMING,
]


class PaymentRun:
    """
    One payment attempt.

    Owns its step sequence exclusively. Terminal states are final; a retry
    needs a new run.
    """

    TRANSITIONS: Dict[ExecutionState, Set[ExecutionState]] = {
        ExecutionState.IDLE: {
            ExecutionState.SWITCHING_NETWORK,
            ExecutionState.FAILED,
        },
        ExecutionState.SWITCHING_NETWORK: {
            ExecutionState.APPROVING,
            ExecutionState.SENDING,
            ExecutionState.FAILED,
        },
        ExecutionState.APPROVING: {
            ExecutionState.SENDING,
            ExecutionState.FAILED,
            ExecutionState.TIMED_OUT,  # Approval receipt never seen
        },
        ExecutionState.SENDING: {
            ExecutionState.CONFIRMING,
            ExecutionState.FAILED,
            ExecutionState.TIMED_OUT,
        },
        ExecutionState.CONFIRMING: {
            ExecutionState.SUCCESS,
            ExecutionState.FAILED,
            ExecutionState.TIMED_OUT,
        },
        ExecutionState.SUCCESS: set(),
        ExecutionState.FAILED: set(),
        ExecutionState.TIMED_OUT: set(),
    }

    def __init__(self, route: RouteOption, registry: Optional[ChainRegistry] = None) -> None:
        self.id = f"run_{uuid.uuid4().hex[:12]}"
        self.route = route
        self.state = ExecutionState.IDLE
        self.history: List[ExecutionState] = [ExecutionState.IDLE]
        self.tracker = ProgressTracker(registry)
        self.tracker.plan(route)
        self.transaction_hash: Optional[str] = None
        self.explorer_link: Optional[str] = None
        self.error: Optional[str] = None

    def can_transition_to(self, target: ExecutionState) -> bool:
        return target in self.TRANSITIONS.get(self.state, set())

    def transition_to(self, target: ExecutionState) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.state.value, target.value)
        logger.debug(f"Run {self.id}: {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    def advance_to(self, target: ExecutionState) -> bool:
        """Move forward to ``target`` through the intermediate states.

        Used by the driver path, where progress arrives as snapshots. Never
        moves backward; APPROVING is only entered when it is the target.
        """
        if self.state not in _FORWARD_ORDER or target not in _FORWARD_ORDER:
            return False
        current = _FORWARD_ORDER.index(self.state)
        wanted = _FORWARD_ORDER.index(target)
        if wanted <= current:
            return False
        for state in _FORWARD_ORDER[current + 1:wanted + 1]:
            if state == ExecutionState.APPROVING and target != ExecutionState.APPROVING:
                continue
            self.transition_to(state)
        return True


class PaymentExecutor:
    """
    Executes selected routes with a connected wallet.

    Responsibilities:
    - Refuse a second ``execute`` while a run is active
    - Switch network, approve when the live allowance is short, submit, confirm
    - Delegate multi-leg routes to the route driver
    - Stream immutable progress snapshots to listeners
    - Hand the outcome to the payment record sink
    """

    def __init__(
        self,
        *,
        approvals: ApprovalManager,
        driver: Optional[LifiRouteDriver] = None,
        recorder: Optional[PaymentRecordSink] = None,
        registry: Optional[ChainRegistry] = None,
        auto_accept_exchange_rate_updates: bool = True,
    ) -> None:
        self.approvals = approvals
        self.driver = driver
        self.recorder = recorder
        self.registry = registry or get_chain_registry()
        self.auto_accept_exchange_rate_updates = auto_accept_exchange_rate_updates
        self._listeners: List[ExecutionListener] = []
        self._active: Optional[PaymentRun] = None

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    @property
    def active_run(self) -> Optional[PaymentRun]:
        return self._active

    def subscribe(self, listener: ExecutionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, run: PaymentRun) -> None:
        event = ExecutionEvent(
            state=run.state,
            steps=run.tracker.steps,
            transaction_hash=run.transaction_hash,
            error=run.error,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Execution listener failed: {e}")

    def _transition(self, run: PaymentRun, target: ExecutionState) -> None:
        run.transition_to(target)
        self._emit(run)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(
        self,
        route: RouteOption,
        wallet: WalletClient,
        *,
        invoice_id: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Execute ``route`` with ``wallet``.

        Args:
            route: The selected route
            wallet: Wallet client for the paying account
            invoice_id: Optional invoice this payment settles

        Returns:
            ExecutionResult in a terminal state
        """
        if self._active is not None:
            raise ExecutionInProgressError()

        run = PaymentRun(route, self.registry)
        self._active = run
        bind_payment_context(run_id=run.id, invoice_id=invoice_id, route_id=route.id)
        logger.info(f"Run {run.id}: executing route {route.id} ({len(route.legs)} legs)")
        try:
            try:
                if route.is_single_transaction:
                    await self._execute_direct(run, wallet)
                else:
                    await self._execute_with_driver(run, wallet)
            except ConfirmationTimeoutError as exc:
                self._finish(run, ExecutionState.TIMED_OUT, exc.message)
                run.explorer_link = exc.explorer_link or run.explorer_link
                logger.warning(f"Run {run.id} timed out waiting for {exc.tx_hash}")
            except WalletInteractionError as exc:
                self._finish(run, ExecutionState.FAILED, exc.message)
                if exc.user_rejected:
                    logger.info(f"Run {run.id} rejected in wallet")
                else:
                    logger.warning(f"Run {run.id} failed: {exc.message}")
            except PaymentError as exc:
                self._finish(run, ExecutionState.FAILED, exc.message)
                logger.warning(f"Run {run.id} failed: {exc.message}")
            except Exception:
                logger.exception(f"Run {run.id} failed unexpectedly")
                self._finish(run, ExecutionState.FAILED, GENERIC_FAILURE_MESSAGE)
        finally:
            self._active = None
            clear_payment_context()

        result = ExecutionResult(
            state=run.state,
            steps=list(run.tracker.steps),
            transaction_hash=run.transaction_hash,
            explorer_link=run.explorer_link,
            error=run.error,
        )
        result.record_id = await self._record(run, invoice_id)
        return result

    def _finish(self, run: PaymentRun, state: ExecutionState, message: str) -> None:
        if run.state.is_terminal:
            return
        run.error = message
        run.tracker.fail_unfinished()
        if not run.can_transition_to(state):
            state = ExecutionState.FAILED
        self._transition(run, state)

    # ------------------------------------------------------------------
    # Direct path: one prepared transaction
    # ------------------------------------------------------------------

    async def _execute_direct(self, run: PaymentRun, wallet: WalletClient) -> None:
        route = run.route
        transaction = route.transaction_request
        chain_id = route.from_chain_id
        owner = route.from_address or transaction.from_address
        token = route.from_token.address

        self._transition(run, ExecutionState.SWITCHING_NETWORK)
        await wallet.ensure_chain(chain_id)

        if route.approval_address and self.approvals.needs_approval(token):
            allowance = await self.approvals.get_allowance(token, owner, route.approval_address, chain_id)
            if allowance < route.from_amount:
                self._transition(run, ExecutionState.APPROVING)
                run.tracker.mark([StepType.APPROVAL], StepStatus.ACTION_REQUIRED)
                self._emit(run)

                approval = self.approvals.build_approval_transaction(
                    token,
                    route.approval_address,
                    amount=route.from_amount,
                    chain_id=chain_id,
                )
                approval_hash = await wallet.send_transaction(approval.to_wallet_params(owner))
                run.tracker.mark([StepType.APPROVAL], StepStatus.EXECUTING, approval_hash)
                self._emit(run)

                await wallet.wait_for_receipt(approval_hash, chain_id)
            run.tracker.mark([StepType.APPROVAL], StepStatus.COMPLETED)

        self._transition(run, ExecutionState.SENDING)
        run.tracker.mark(MAIN_STEP_TYPES, StepStatus.ACTION_REQUIRED)
        self._emit(run)

        tx_hash = await wallet.send_transaction(transaction.to_wallet_params(owner))
        run.transaction_hash = tx_hash
        run.explorer_link = self.registry.explorer_tx_url(chain_id, tx_hash)
        run.tracker.mark(MAIN_STEP_TYPES, StepStatus.EXECUTING, tx_hash)
        self._transition(run, ExecutionState.CONFIRMING)

        await wallet.wait_for_receipt(tx_hash, chain_id)
        run.tracker.mark(MAIN_STEP_TYPES, StepStatus.COMPLETED)
        self._transition(run, ExecutionState.SUCCESS)

    # ------------------------------------------------------------------
    # Driver path: multi-leg routes
    # ------------------------------------------------------------------

    async def _execute_with_driver(self, run: PaymentRun, wallet: WalletClient) -> None:
        if self.driver is None:
            raise PaymentError("This route needs the route driver, which is not configured")

        self._transition(run, ExecutionState.SWITCHING_NETWORK)
        await wallet.ensure_chain(run.route.from_chain_id)

        async def switch_chain_hook(chain_id: int) -> WalletClient:
            await wallet.ensure_chain(chain_id)
            return wallet

        def update_route_hook(snapshot: Dict[str, Any]) -> None:
            run.tracker.apply(snapshot)
            self._track_snapshot(run, snapshot)
            self._emit(run)

        def accept_exchange_rate_update_hook(old_amount: int, new_amount: int) -> bool:
            logger.info(f"Run {run.id}: exchange rate update {old_amount} -> {new_amount}")
            return self.auto_accept_exchange_rate_updates

        hooks = ExecutionHooks(
            switch_chain_hook=switch_chain_hook,
            update_route_hook=update_route_hook,
            accept_exchange_rate_update_hook=accept_exchange_rate_update_hook,
        )
        final = await self.driver.execute_route(run.route.raw, hooks)

        run.tracker.apply(final)
        self._track_snapshot(run, final)
        run.advance_to(ExecutionState.CONFIRMING)
        self._transition(run, ExecutionState.SUCCESS)

    def _track_snapshot(self, run: PaymentRun, snapshot: Dict[str, Any]) -> None:
        """Advance the run state from the driver's process list."""
        target: Optional[ExecutionState] = None
        for step in snapshot.get("steps") or []:
            for process in (step.get("execution") or {}).get("process") or []:
                process_type = process.get("type")
                if process_type in {"SWAP", "CROSS_CHAIN"}:
                    if process.get("txHash"):
                        target = ExecutionState.CONFIRMING
                        run.transaction_hash = process["txHash"]
                        run.explorer_link = process.get("txLink") or run.explorer_link
                    elif target != ExecutionState.CONFIRMING:
                        target = ExecutionState.SENDING
                elif process_type in {"TOKEN_ALLOWANCE", "PERMIT"} and target is None:
                    if process.get("status") in {"ACTION_REQUIRED", "PENDING"}:
                        target = ExecutionState.APPROVING
        if target is not None:
            run.advance_to(target)

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    async def _record(self, run: PaymentRun, invoice_id: Optional[str]) -> Optional[str]:
        if self.recorder is None:
            return None

        status = {
            ExecutionState.SUCCESS: PaymentStatus.COMPLETED,
            ExecutionState.TIMED_OUT: PaymentStatus.TIMED_OUT,
        }.get(run.state, PaymentStatus.FAILED)

        route = run.route
        record = PaymentRecord(
            invoice_id=invoice_id,
            transaction_hash=run.transaction_hash,
            source_chain=route.from_chain_id,
            destination_chain=route.to_chain_id,
            source_token=route.from_token.symbol,
            destination_token=route.to_token.symbol,
            amount=decimal_to_str(from_base_units(route.from_amount, route.from_token.decimals), 8),
            status=status,
            steps=[step.to_dict() for step in run.tracker.steps],
            error=run.error,
        )
        try:
            saved = await self.recorder.save(record)
        except Exception as e:
            logger.warning(f"Failed to save payment record for run {run.id}: {e}")
            return None
        return saved.id if saved is not None else record.id
