"""Member capacity limits of the supported chat platforms."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformCapacity:
    name: str
    max_members: int
    # Percentage of capacity at which a group counts as nearly full.
    near_capacity_threshold: float


PLATFORM_CAPACITIES: dict[str, PlatformCapacity] = {
    "whatsapp": PlatformCapacity("WhatsApp", 1024, 93),
    "telegram": PlatformCapacity("Telegram", 200_000, 90),
    "slack": PlatformCapacity("Slack", 100_000, 90),
    "discord": PlatformCapacity("Discord", 500_000, 90),
}


@dataclass(frozen=True)
class CapacityInfo:
    platform: str
    members: int
    percent_full: float
    is_near_full: bool
    is_full: bool
    max_members: int | None
    remaining: int | None


def get_capacity_info(platform: str, members: int) -> CapacityInfo:
    """Describe how full a group of ``members`` is on ``platform``.

    Platforms without a known limit are never full.
    """
    capacity = PLATFORM_CAPACITIES.get(platform.strip().lower())
    if capacity is None:
        return CapacityInfo(platform, members, 0.0, False, False, None, None)

    percent_full = members / capacity.max_members * 100
    return CapacityInfo(
        platform=capacity.name,
        members=members,
        percent_full=round(min(percent_full, 100.0), 2),
        is_near_full=capacity.near_capacity_threshold <= percent_full < 100,
        is_full=percent_full >= 100,
        max_members=capacity.max_members,
        remaining=max(capacity.max_members - members, 0),
    )
