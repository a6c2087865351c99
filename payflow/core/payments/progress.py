"""
Progress/status mapping.

Flattens the routing service's nested step/process execution state into the
ordered ``TransactionStep`` sequence. The mapping is recomputed from the full
snapshot every time, so re-applying the same snapshot yields the same steps.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .chain_registry import ChainRegistry, get_chain_registry
from .models import RouteOption, StepStatus, StepType, TransactionStep
from .normalize import legs_for_step


PROCESS_STATUS_MAP = {
    "STARTED": StepStatus.EXECUTING,
    "PENDING": StepStatus.EXECUTING,
    "ACTION_REQUIRED": StepStatus.ACTION_REQUIRED,
    "DONE": StepStatus.COMPLETED,
    "FAILED": StepStatus.FAILED,
    "CANCELLED": StepStatus.FAILED,
}

APPROVAL_PROCESSES = ("TOKEN_ALLOWANCE", "PERMIT")
SOURCE_PROCESSES = ("SWAP", "CROSS_CHAIN")
DESTINATION_PROCESS = "RECEIVING_CHAIN"


def _latest_processes(processes: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    by_type: Dict[str, Dict[str, Any]] = {}
    for process in processes or []:
        if isinstance(process, dict) and process.get("type"):
            by_type[process["type"]] = process
    return by_type


def _process_status(process: Optional[Dict[str, Any]]) -> StepStatus:
    if not process:
        return StepStatus.PENDING
    return PROCESS_STATUS_MAP.get(str(process.get("status", "")).upper(), StepStatus.PENDING)


def _first(by_type: Dict[str, Dict[str, Any]], names: Tuple[str, ...]) -> Optional[Dict[str, Any]]:
    for name in names:
        if name in by_type:
            return by_type[name]
    return None


def _tx_fields(
    process: Optional[Dict[str, Any]],
    chain_id: int,
    registry: ChainRegistry,
) -> Tuple[Optional[str], Optional[str]]:
    if not process:
        return None, None
    tx_hash = process.get("txHash")
    link = process.get("txLink") or registry.explorer_tx_url(chain_id, tx_hash)
    return tx_hash, link


def map_provider_event(
    route_snapshot: Dict[str, Any],
    registry: Optional[ChainRegistry] = None,
) -> List[TransactionStep]:
    """
    Map a live route snapshot to ordered transaction steps.

    Approval legs follow the step's TOKEN_ALLOWANCE/PERMIT process; once the
    step has moved on to its main transaction without one, the approval was
    not needed and counts as completed. Legs up to and including the bridge
    follow the source-chain SWAP/CROSS_CHAIN process. A bridge only completes
    when the RECEIVING_CHAIN process does, and legs after the bridge follow
    that process.
    """
    registry = registry or get_chain_registry()
    result: List[TransactionStep] = []

    for step in route_snapshot.get("steps") or []:
        execution = step.get("execution") or {}
        by_type = _latest_processes(execution.get("process") or [])
        step_done = str(execution.get("status", "")).upper() == "DONE"

        approval = _first(by_type, APPROVAL_PROCESSES)
        source = _first(by_type, SOURCE_PROCESSES)
        receiving = by_type.get(DESTINATION_PROCESS)
        source_status = _process_status(source)

        past_bridge = False
        for leg in legs_for_step(step):
            item = TransactionStep.from_leg(leg)

            if leg.type == StepType.APPROVAL:
                if approval is not None:
                    item.status = _process_status(approval)
                    item.transaction_hash, item.explorer_link = _tx_fields(approval, leg.from_chain_id, registry)
                elif source is not None or step_done:
                    item.status = StepStatus.COMPLETED

            elif leg.type == StepType.BRIDGE:
                past_bridge = True
                item.transaction_hash, item.explorer_link = _tx_fields(source, leg.from_chain_id, registry)
                if source_status != StepStatus.COMPLETED:
                    item.status = source_status
                elif receiving is not None:
                    item.status = _process_status(receiving)
                else:
                    item.status = StepStatus.COMPLETED if step_done else StepStatus.EXECUTING

            elif past_bridge:
                if receiving is not None:
                    item.status = _process_status(receiving)
                    item.transaction_hash, item.explorer_link = _tx_fields(receiving, leg.to_chain_id, registry)
                elif step_done:
                    item.status = StepStatus.COMPLETED

            else:
                item.status = source_status
                item.transaction_hash, item.explorer_link = _tx_fields(source, leg.from_chain_id, registry)

            if step_done and item.status != StepStatus.FAILED:
                item.status = StepStatus.COMPLETED
            result.append(item)

    return result


class ProgressTracker:
    """Owns the step sequence of one execution run."""

    def __init__(self, registry: Optional[ChainRegistry] = None) -> None:
        self._registry = registry or get_chain_registry()
        self._steps: List[TransactionStep] = []

    @property
    def steps(self) -> Tuple[TransactionStep, ...]:
        """Deep copies; callers never see the live sequence."""
        return tuple(copy.deepcopy(self._steps))

    def plan(self, route: RouteOption) -> Tuple[TransactionStep, ...]:
        self._steps = [TransactionStep.from_leg(leg) for leg in route.legs]
        return self.steps

    def apply(self, route_snapshot: Dict[str, Any]) -> Tuple[TransactionStep, ...]:
        self._steps = map_provider_event(route_snapshot, self._registry)
        return self.steps

    def mark(
        self,
        step_types: Iterable[StepType],
        status: StepStatus,
        tx_hash: Optional[str] = None,
    ) -> None:
        wanted = set(step_types)
        for step in self._steps:
            if step.type not in wanted:
                continue
            step.status = status
            if tx_hash:
                step.transaction_hash = tx_hash
                step.explorer_link = self._registry.explorer_tx_url(step.from_chain_id, tx_hash)

    def fail_unfinished(self) -> None:
        """Close out a run that ended early: every unfinished step becomes failed."""
        for step in self._steps:
            if step.status != StepStatus.COMPLETED:
                step.status = StepStatus.FAILED
