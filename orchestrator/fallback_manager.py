from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackStrategy(Generic[T]):
    """One step of a fallback chain; ``run`` returns ``(result, ok)``."""

    name: str
    run: Callable[..., tuple[T | None, bool]]


@dataclass(frozen=True)
class FallbackOutcome(Generic[T]):
    value: T | None
    ok: bool
    strategy: str | None
    attempts: list[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return len(self.attempts) > 1


class FallbackChain(Generic[T]):
    """
    Ordered strategies evaluated in sequence until one reports ok.

    A strategy that raises counts as not ok; the chain itself never raises.
    When every strategy fails the outcome carries the last non-None value
    (if any) with ``ok=False``.
    """

    def __init__(self, name: str, strategies: list[FallbackStrategy[T]]):
        if not strategies:
            raise ValueError("FallbackChain needs at least one strategy")
        self.name = name
        self.strategies = list(strategies)

    def run(self, *args: Any, **kwargs: Any) -> FallbackOutcome[T]:
        attempts: list[str] = []
        last_value: T | None = None

        for strategy in self.strategies:
            attempts.append(strategy.name)
            try:
                value, ok = strategy.run(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    f"{self.name}: strategy '{strategy.name}' raised: {e}",
                    extra={
                        "extra_fields": {
                            "chain": self.name,
                            "strategy": strategy.name,
                            "error_type": type(e).__name__,
                        }
                    },
                )
                continue

            if ok:
                if len(attempts) > 1:
                    logger.info(
                        f"{self.name}: served by fallback '{strategy.name}'",
                        extra={"extra_fields": {"chain": self.name, "attempts": attempts}},
                    )
                return FallbackOutcome(value=value, ok=True, strategy=strategy.name, attempts=attempts)

            if value is not None:
                last_value = value

        logger.error(
            f"{self.name}: all strategies failed",
            extra={"extra_fields": {"chain": self.name, "attempts": attempts}},
        )
        return FallbackOutcome(value=last_value, ok=False, strategy=None, attempts=attempts)
