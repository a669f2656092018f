import math
import logging

logger = logging.getLogger(__name__)

# One hour in microseconds
DEFAULT_HIGHEST_TRACKABLE_US = 3_600_000_000


class LatencyHistogram:
    """
    Log-linear latency histogram with a fixed number of significant digits.

    Every power-of-two range is split into the same number of linear
    sub-buckets, so a recorded value is kept within a relative error of
    10**-significant_digits while memory only grows with the number of
    distinct buckets hit, never with the number of samples.
    """

    def __init__(
        self,
        significant_digits: int = 3,
        highest_trackable_us: int = DEFAULT_HIGHEST_TRACKABLE_US,
    ) -> None:
        if not 1 <= significant_digits <= 5:
            raise ValueError("significant_digits must be between 1 and 5")
        if highest_trackable_us < 1:
            raise ValueError("highest_trackable_us must be positive")
        self.significant_digits = significant_digits
        self.highest_trackable_us = highest_trackable_us
        self._sub_bucket_bits = math.ceil(math.log2(2 * 10**significant_digits))
        # (shift, sub_bucket) -> count
        self._counts: dict[tuple[int, int], int] = {}
        self._total = 0
        self._sum = 0
        self._min: int | None = None
        self._max: int | None = None

    def _key_for(self, value: int) -> tuple[int, int]:
        shift = max(0, value.bit_length() - self._sub_bucket_bits)
        return shift, value >> shift

    @staticmethod
    def _highest_equivalent(key: tuple[int, int]) -> int:
        shift, sub = key
        return ((sub + 1) << shift) - 1

    def record(self, value_us: int) -> bool:
        """Record one sample. Returns False if the sample was dropped."""
        if isinstance(value_us, bool) or not isinstance(value_us, int):
            logger.debug(f"Dropping non-integer latency sample: {value_us!r}")
            return False
        if value_us < 0 or value_us > self.highest_trackable_us:
            logger.debug(f"Dropping out-of-range latency sample: {value_us}us")
            return False

        key = self._key_for(value_us)
        self._counts[key] = self._counts.get(key, 0) + 1
        self._total += 1
        self._sum += value_us
        if self._min is None or value_us < self._min:
            self._min = value_us
        if self._max is None or value_us > self._max:
            self._max = value_us
        return True

    @property
    def total_count(self) -> int:
        return self._total

    def is_empty(self) -> bool:
        return self._total == 0

    def _require_samples(self) -> None:
        if self._total == 0:
            raise ValueError("histogram has no samples")

    @property
    def mean(self) -> float:
        self._require_samples()
        return self._sum / self._total

    @property
    def min(self) -> int:
        self._require_samples()
        return self._min

    @property
    def max(self) -> int:
        self._require_samples()
        return self._max

    def value_at_quantile(self, q: float) -> int:
        """Value at quantile q (0.0-1.0), rounded up to its bucket's upper edge."""
        self._require_samples()
        q = min(1.0, max(0.0, float(q)))
        rank = max(1, math.ceil(q * self._total))
        cumulative = 0
        for key in sorted(self._counts):
            cumulative += self._counts[key]
            if cumulative >= rank:
                return min(self._highest_equivalent(key), self._max)
        return self._max

    def merge(self, other: "LatencyHistogram") -> None:
        if other.significant_digits != self.significant_digits:
            raise ValueError("cannot merge histograms with different precision")
        for key, count in other._counts.items():
            self._counts[key] = self._counts.get(key, 0) + count
        self._total += other._total
        self._sum += other._sum
        if other._min is not None and (self._min is None or other._min < self._min):
            self._min = other._min
        if other._max is not None and (self._max is None or other._max > self._max):
            self._max = other._max

    def copy(self) -> "LatencyHistogram":
        clone = LatencyHistogram(self.significant_digits, self.highest_trackable_us)
        clone.merge(self)
        return clone
