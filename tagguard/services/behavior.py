"""
Behavior-mode overlay shared by the assignment and protection services.

PASS, FAIL, SKIP and TIMEOUT short-circuit an operation with a fixed,
observable outcome. EXECUTE and DRY_RUN return None here and are
handled by the service itself, since only it knows what a read-only
run looks like.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..domain.modes import BehaviorMode
from ..domain.result import ResultStatus
from ..exit_codes import SUCCESS, GENERAL_ERROR, TIMEOUT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatedOutcome:
    """Canned outcome of a simulated behavior mode."""
    status: ResultStatus
    details: str
    exit_code: int


def simulate(
    mode: BehaviorMode,
    operation: str,
    timeout_delay: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[SimulatedOutcome]:
    """
    Apply a simulation mode to an operation.

    Args:
        mode: Behavior mode in effect
        operation: Name used in log messages (e.g., "tag assignment")
        timeout_delay: Seconds TIMEOUT blocks before reporting
        sleep: Sleep function (injected by tests)

    Returns:
        The canned outcome, or None when the operation should run
        (EXECUTE or DRY_RUN)
    """
    if mode in (BehaviorMode.EXECUTE, BehaviorMode.DRY_RUN):
        return None

    if mode == BehaviorMode.PASS:
        logger.info(f"Simulated success for {operation}")
        return SimulatedOutcome(ResultStatus.PASSED, f"Simulated success for {operation}", SUCCESS)

    if mode == BehaviorMode.FAIL:
        logger.error(f"Simulated failure for {operation}")
        return SimulatedOutcome(ResultStatus.ERROR, f"Simulated failure for {operation}", GENERAL_ERROR)

    if mode == BehaviorMode.SKIP:
        logger.info(f"Skipping {operation}")
        return SimulatedOutcome(ResultStatus.SKIPPED, f"Skipped {operation}", SUCCESS)

    # TIMEOUT: outlast the caller's deadline, but never block forever
    logger.warning(f"Simulating timeout for {operation} ({timeout_delay:g}s)")
    sleep(timeout_delay)
    return SimulatedOutcome(
        ResultStatus.TIMEOUT,
        f"Simulated timeout for {operation} after {timeout_delay:g}s",
        TIMEOUT,
    )
