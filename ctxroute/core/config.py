# ctxroute/core/config.py
from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class LearningConfig:
    alpha: float = 0.6              # learning rate
    gamma: float = 0.4              # discount on the future-value term
    q_max: float = 1.0              # upper clamp for stored values


@dataclass
class AgingConfig:
    min_elapsed: float = 240.0      # disconnected this long before decay fires
    decay: float = 0.998            # per time unit
    floor: float = 0.05             # aged values never drop below this


@dataclass
class EnsConfig:
    ttl: float = 3600.0             # records older than this are expired


@dataclass
class SocialConfig:
    alpha_popularity: float = 0.5   # smoothing factor
    popularity_window: float = 240.0
    popularity_threshold: int = 12  # encounters in window that count as "fully popular"

    frequency_window: float = 600.0
    max_frequency: float = 15.0
    max_closeness: float = 900.0
    frequency_weight: float = 0.5
    closeness_weight: float = 0.2
    recency_factor: float = 0.3
    recency_scale: float = 1000.0   # larger = slower recency decay

    def __post_init__(self):
        for name in ("popularity_threshold", "max_frequency", "max_closeness", "recency_scale"):
            if getattr(self, name) <= 0:
                raise ValueError(f"SocialConfig.{name} must be > 0, got {getattr(self, name)}")
        if not 0.0 <= self.alpha_popularity <= 1.0:
            raise ValueError(f"SocialConfig.alpha_popularity must be in [0, 1], got {self.alpha_popularity}")


@dataclass
class CrispConfig:
    theta_low: float = 0.4          # <= low  -> first level
    theta_high: float = 0.7         # <= high -> second level, above -> third
    max_buffer_kb: float = 10 * 1024.0
    max_energy: float = 500.0
    max_ttl: float = 240.0
    max_hops: float = 10.0

    def __post_init__(self):
        for name in ("max_buffer_kb", "max_energy", "max_ttl", "max_hops"):
            if getattr(self, name) <= 0:
                raise ValueError(f"CrispConfig.{name} must be > 0, got {getattr(self, name)}")
        if self.theta_low > self.theta_high:
            raise ValueError("CrispConfig.theta_low must not exceed theta_high")


@dataclass
class DensityConfig:
    dense_above: float = 0.6
    medium_above: float = 0.3
    # (base, span): copies drawn uniformly from [base, base + span)
    dense_copies: tuple[int, int] = (5, 25)
    medium_copies: tuple[int, int] = (80, 80)
    sparse_copies: tuple[int, int] = (250, 80)

    def __post_init__(self):
        # yaml hands us lists
        self.dense_copies = tuple(self.dense_copies)
        self.medium_copies = tuple(self.medium_copies)
        self.sparse_copies = tuple(self.sparse_copies)
        for name in ("dense_copies", "medium_copies", "sparse_copies"):
            base, span = getattr(self, name)
            if span <= 0 or base < 0:
                raise ValueError(f"DensityConfig.{name} needs base >= 0 and span > 0, got {(base, span)}")


@dataclass
class RouterConfig:
    learning: LearningConfig = field(default_factory=LearningConfig)
    aging: AgingConfig = field(default_factory=AgingConfig)
    ens: EnsConfig = field(default_factory=EnsConfig)
    social: SocialConfig = field(default_factory=SocialConfig)
    crisp: CrispConfig = field(default_factory=CrispConfig)
    density: DensityConfig = field(default_factory=DensityConfig)
    total_nodes: int = 0            # 0 -> use the number of registered routers

    @classmethod
    def from_dict(cls, d: dict | None) -> "RouterConfig":
        d = d or {}
        return cls(
            learning=LearningConfig(**(d.get("learning") or {})),
            aging=AgingConfig(**(d.get("aging") or {})),
            ens=EnsConfig(**(d.get("ens") or {})),
            social=SocialConfig(**(d.get("social") or {})),
            crisp=CrispConfig(**(d.get("crisp") or {})),
            density=DensityConfig(**(d.get("density") or {})),
            total_nodes=int(d.get("total_nodes", 0) or 0),
        )
