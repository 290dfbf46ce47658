from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoyaltyCounter:
    owner_id: str
    client_id: str
    count: int


@dataclass(frozen=True)
class LoyaltyTier:
    name: str
    min_count: int


@dataclass(frozen=True)
class LoyaltyStanding:
    count: int
    tier: str
    next_tier: str | None
    next_tier_at: int | None
    reward_progress: int
    reward_target: int


@dataclass(frozen=True)
class LoyaltyProgram:
    """
    Tier ladder plus a reward cycle (every `reward_target` completed visits).
    Tiers are sorted by threshold; the first tier should start at 0.
    """

    tiers: tuple[LoyaltyTier, ...]
    reward_target: int = 10

    @staticmethod
    def from_thresholds(thresholds: dict[str, int], reward_target: int = 10) -> "LoyaltyProgram":
        tiers = tuple(
            sorted(
                (LoyaltyTier(name=name, min_count=int(count)) for name, count in thresholds.items()),
                key=lambda t: t.min_count,
            )
        )
        return LoyaltyProgram(tiers=tiers, reward_target=max(1, int(reward_target)))

    def standing(self, count: int) -> LoyaltyStanding:
        count = max(0, count)
        current: LoyaltyTier | None = None
        upcoming: LoyaltyTier | None = None
        for tier in self.tiers:
            if tier.min_count <= count:
                current = tier
            elif upcoming is None:
                upcoming = tier
        return LoyaltyStanding(
            count=count,
            tier=current.name if current else "",
            next_tier=upcoming.name if upcoming else None,
            next_tier_at=upcoming.min_count if upcoming else None,
            reward_progress=count % self.reward_target,
            reward_target=self.reward_target,
        )
