"""Phase result tracking for DataCoordinator jobs.

A refresh run is made of two phases, refreshing every feed and then
draining the pending queue. Each phase reports whether it completed, how
many items it handled, how long it took and which errors it collected.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PhaseResult:
    """Results from a single processing phase.

    Attributes:
        success: Whether the phase completed without errors.
        count: Number of items processed in this phase.
        errors: Errors collected while processing individual items.
        duration_seconds: Time taken to complete this phase.
    """

    success: bool
    count: int
    errors: list[Exception] = field(default_factory=list[Exception])
    duration_seconds: float = 0.0
