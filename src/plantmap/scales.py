"""Color and size scales used to encode plant attributes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Hashable, Iterable, Sequence, TypeVar

import numpy as np

from .config import AppConfig


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class UnknownCategoryError(KeyError):
    """Raised when an ordinal scale without an unknown value sees a new key."""


class OrdinalScale(Generic[K, V]):
    """Fixed positional mapping: `domain[i]` maps to `range_[i]`."""

    def __init__(self, domain: Sequence[K], range_: Sequence[V], unknown: V | None = None) -> None:
        if len(domain) != len(range_):
            raise ValueError(
                f"Ordinal scale needs equal domain/range lengths ({len(domain)} != {len(range_)})"
            )
        if len(set(domain)) != len(domain):
            raise ValueError("Ordinal scale domain keys must be unique")
        self.domain = tuple(domain)
        self.range = tuple(range_)
        self.unknown = unknown
        self._lookup = dict(zip(self.domain, self.range))

    def knows(self, key: K) -> bool:
        return key in self._lookup

    def apply(self, key: K) -> V:
        try:
            return self._lookup[key]
        except KeyError:
            if self.unknown is not None:
                return self.unknown
            raise UnknownCategoryError(key) from None

    def __call__(self, key: K) -> V:
        return self.apply(key)


@dataclass(frozen=True, slots=True)
class SqrtScaleConfig:
    domain: tuple[float, float]
    range: tuple[float, float]
    clamp: bool = False


class SqrtScale:
    """Continuous square-root scale.

    Inputs go through `sign(x) * sqrt(|x|)` before a linear map from the
    transformed domain onto the range. A zero-width domain maps every input to
    the range midpoint. Without `clamp` the scale extrapolates past the domain.
    """

    def __init__(self, cfg: SqrtScaleConfig) -> None:
        self.cfg = cfg
        self._t0 = _signed_sqrt(cfg.domain[0])
        self._t1 = _signed_sqrt(cfg.domain[1])

    @property
    def domain(self) -> tuple[float, float]:
        return self.cfg.domain

    @property
    def range(self) -> tuple[float, float]:
        return self.cfg.range

    def apply(self, value: float) -> float:
        r0, r1 = self.cfg.range
        span = self._t1 - self._t0
        if span == 0 or not math.isfinite(span):
            t = 0.5
        else:
            t = (_signed_sqrt(value) - self._t0) / span
        if self.cfg.clamp:
            t = min(max(t, 0.0), 1.0)
        return r0 + (r1 - r0) * t

    def __call__(self, value: float) -> float:
        return self.apply(value)


def quantile(values: Iterable[float | None], p: float) -> float | None:
    """Linearly interpolated quantile over the finite values, None if there are none."""
    finite = sorted(float(v) for v in values if v is not None and math.isfinite(float(v)))
    if not finite:
        return None
    return float(np.quantile(np.asarray(finite, dtype=float), p))


def build_color_scale(cfg: AppConfig) -> OrdinalScale[str, str]:
    unknown = cfg.unknown_category.color if cfg.unknown_category.policy == "fallback" else None
    return OrdinalScale(
        [category.key for category in cfg.categories],
        [category.color for category in cfg.categories],
        unknown=unknown,
    )


def build_radius_scale(cfg: AppConfig, values: Iterable[float | None]) -> SqrtScale:
    upper = quantile(values, cfg.radius.percentile)
    return SqrtScale(
        SqrtScaleConfig(
            domain=(0.0, upper if upper is not None else 0.0),
            range=cfg.radius.range,
            clamp=cfg.radius.clamp,
        )
    )


def _signed_sqrt(value: float) -> float:
    return math.copysign(math.sqrt(abs(value)), value)
