# ctxroute/core/crisp.py
from __future__ import annotations
import math
from enum import Enum

from ctxroute.core.config import CrispConfig


class Level(Enum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class Ability(Enum):
    VBAD = 0
    BAD = 1
    GOOD = 2
    PERFECT = 3


class SocialImportance(Enum):
    BAD = 0
    GOOD = 1
    PERFECT = 2


class TransferOpportunity(Enum):
    LOW = 0
    MED = 1
    HIGH = 2
    VHIGH = 3


class MsgPriority(Enum):
    LOW = 0
    NORMAL = 1
    HIGH = 2
    URGENT = 3


L, M, H = Level.LOW, Level.MEDIUM, Level.HIGH

# (buffer, energy) -> ability
ABILITY_RULES = {
    (H, H): Ability.PERFECT, (H, M): Ability.PERFECT, (H, L): Ability.BAD,
    (M, H): Ability.PERFECT, (M, M): Ability.GOOD,    (M, L): Ability.BAD,
    (L, H): Ability.GOOD,    (L, M): Ability.BAD,     (L, L): Ability.VBAD,
}

# (popularity, tie strength) -> social importance; popularity levels are
# SLOW/MED/FAST and tie levels POOR/FAIR/GOOD, mapped onto LOW/MEDIUM/HIGH
SOCIAL_RULES = {
    (H, H): SocialImportance.PERFECT, (H, M): SocialImportance.GOOD, (H, L): SocialImportance.BAD,
    (M, H): SocialImportance.GOOD,    (M, M): SocialImportance.GOOD, (M, L): SocialImportance.BAD,
    (L, H): SocialImportance.GOOD,    (L, M): SocialImportance.BAD,  (L, L): SocialImportance.BAD,
}

TRANSFER_RULES = {
    (Ability.PERFECT, SocialImportance.PERFECT): TransferOpportunity.VHIGH,
    (Ability.PERFECT, SocialImportance.GOOD): TransferOpportunity.VHIGH,
    (Ability.PERFECT, SocialImportance.BAD): TransferOpportunity.MED,
    (Ability.GOOD, SocialImportance.PERFECT): TransferOpportunity.HIGH,
    (Ability.GOOD, SocialImportance.GOOD): TransferOpportunity.HIGH,
    (Ability.GOOD, SocialImportance.BAD): TransferOpportunity.LOW,
    (Ability.BAD, SocialImportance.PERFECT): TransferOpportunity.MED,
}

# (ttl urgency, hop spread) -> priority
PRIORITY_RULES = {
    (L, H): MsgPriority.URGENT, (L, M): MsgPriority.HIGH,   (L, L): MsgPriority.NORMAL,
    (M, H): MsgPriority.HIGH,   (M, M): MsgPriority.NORMAL, (M, L): MsgPriority.LOW,
    (H, H): MsgPriority.HIGH,   (H, M): MsgPriority.NORMAL, (H, L): MsgPriority.NORMAL,
}

# weight handed to the live update as "opportunity"
OPPORTUNITY_WEIGHT = {
    TransferOpportunity.LOW: 0.25,
    TransferOpportunity.MED: 0.5,
    TransferOpportunity.HIGH: 0.75,
    TransferOpportunity.VHIGH: 1.0,
}


class CrispContext:
    """
    Crisp (non-fuzzy) rule base over normalized context inputs.
    Every rule table has a fallback, so no input combination raises.
    """
    def __init__(self, cfg: CrispConfig | None = None):
        self.cfg = cfg or CrispConfig()

    # ---------- levels ----------
    def classify(self, value: float) -> Level:
        if value is None or math.isnan(value) or value <= self.cfg.theta_low:
            return Level.LOW
        if value <= self.cfg.theta_high:
            return Level.MEDIUM
        return Level.HIGH

    # ---------- rule tables ----------
    @staticmethod
    def ability(buffer: Level, energy: Level) -> Ability:
        return ABILITY_RULES.get((buffer, energy), Ability.VBAD)

    @staticmethod
    def social(popularity: Level, tie: Level) -> SocialImportance:
        return SOCIAL_RULES.get((popularity, tie), SocialImportance.BAD)

    @staticmethod
    def transfer(ability: Ability, social: SocialImportance) -> TransferOpportunity:
        return TRANSFER_RULES.get((ability, social), TransferOpportunity.LOW)

    @staticmethod
    def priority(ttl: Level, hop: Level) -> MsgPriority:
        return PRIORITY_RULES.get((ttl, hop), MsgPriority.LOW)

    @staticmethod
    def social_binary(si: SocialImportance) -> int:
        return 1 if si in (SocialImportance.GOOD, SocialImportance.PERFECT) else 0

    @staticmethod
    def transfer_binary(opp: TransferOpportunity) -> int:
        return 0 if opp is TransferOpportunity.LOW else 1

    @staticmethod
    def priority_binary(prio: MsgPriority) -> float:
        return 1.0 if prio in (MsgPriority.HIGH, MsgPriority.URGENT) else 0.0

    # ---------- normalization ----------
    def normalize_buffer(self, free_buffer_bytes: float) -> float:
        return min((free_buffer_bytes / 1024.0) / self.cfg.max_buffer_kb, 1.0)

    def normalize_energy(self, remaining_energy: float) -> float:
        return min(remaining_energy / self.cfg.max_energy, 1.0)

    # ---------- entry points ----------
    def transfer_opportunity(self, free_buffer_bytes: float, remaining_energy: float,
                             popularity: float, tie_strength: float) -> TransferOpportunity:
        ab = self.ability(self.classify(self.normalize_buffer(free_buffer_bytes)),
                          self.classify(self.normalize_energy(remaining_energy)))
        si = self.social(self.classify(popularity), self.classify(tie_strength))
        return self.transfer(ab, si)

    def evaluate_neighbor(self, free_buffer_bytes: float, remaining_energy: float,
                          popularity: float, tie_strength: float) -> int:
        """1 if the neighbor is worth handing a message to now."""
        return self.transfer_binary(
            self.transfer_opportunity(free_buffer_bytes, remaining_energy, popularity, tie_strength))

    def evaluate_self(self, popularity: float, tie_strength: float) -> int:
        return self.social_binary(self.social(self.classify(popularity), self.classify(tie_strength)))

    def evaluate_message(self, ttl: float, hop_count: float) -> float:
        """1.0 for HIGH/URGENT messages: little TTL left and/or already widely spread."""
        if not (math.isfinite(ttl) and math.isfinite(hop_count)):
            return 0.0
        ttl_n = 1.0 - min(ttl / self.cfg.max_ttl, 1.0)
        hop_n = min(hop_count / self.cfg.max_hops, 1.0)
        return self.priority_binary(self.priority(self.classify(ttl_n), self.classify(hop_n)))

    def opportunity_weight(self, opp: TransferOpportunity) -> float:
        return OPPORTUNITY_WEIGHT.get(opp, 0.0)
