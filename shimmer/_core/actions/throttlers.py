import dataclasses
from collections.abc import Hashable


@dataclasses.dataclass
class ExponentialBackoff:
    """
    A per-key state of retrying: every consecutive failure doubles the delay.

    The delays go as ``base_delay * 2 ** failures``, capped at ``max_delay``.
    The keys are independent: a failing key does not slow down other keys.
    Once a key succeeds, it is forgotten, and starts from the base delay again.
    """
    base_delay: float
    max_delay: float
    failures: dict[Hashable, int] = dataclasses.field(default_factory=dict)

    def when(self, key: Hashable) -> float:
        """ Count one more failure, and get the delay before the next attempt. """
        exponent = self.failures.get(key, 0)
        self.failures[key] = exponent + 1

        # Beyond some point, the float multiplication overflows; the cap is reached long before.
        if exponent >= 64:
            return self.max_delay
        return min(self.base_delay * 2 ** exponent, self.max_delay)

    def retries(self, key: Hashable) -> int:
        return self.failures.get(key, 0)

    def forget(self, key: Hashable) -> None:
        self.failures.pop(key, None)
