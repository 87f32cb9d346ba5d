"""
Ordered fallback strategies.

Each strategy is tried in turn; the first success short-circuits. Used for
batch -> individual query fallback and for machine-type name variants.
"""
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple
import logging


logger = logging.getLogger(__name__)


@dataclass
class Attempt:
    """Outcome of one strategy."""
    succeeded: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "Attempt":
        return cls(succeeded=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "Attempt":
        return cls(succeeded=False, error=error)


Strategy = Callable[[], Attempt]


def first_success(strategies: Iterable[Tuple[str, Strategy]]) -> Attempt:
    """
    Run strategies in order until one succeeds.

    Args:
        strategies: (name, strategy) pairs

    Returns:
        The first successful Attempt, or a failed Attempt listing every error
    """
    errors: List[str] = []
    for name, strategy in strategies:
        attempt = strategy()
        if attempt.succeeded:
            return attempt
        logger.warning(f"Strategy '{name}' failed: {attempt.error}")
        errors.append(f"{name}: {attempt.error}")
    return Attempt.failure("; ".join(errors) or "no strategies")
