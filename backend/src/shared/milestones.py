"""
Milestone tracking - progress thresholds and one-time bonus calculations.
"""
from dataclasses import dataclass, replace, asdict
from decimal import Decimal
from typing import Iterable, List, Optional

from .allocation import round_half_up
from .config import config


# Percentage thresholds, ascending
MILESTONE_THRESHOLDS = (25, 50, 75, 100)

MILESTONE_BONUS_RATE = config.MILESTONE_BONUS_RATE
NEAR_WINDOW = config.MILESTONE_NEAR_WINDOW


class MilestoneStatus:
    """Presentation status of a single threshold."""
    ACHIEVED = 'achieved'
    NEAR = 'near'
    PENDING = 'pending'


@dataclass(frozen=True)
class Milestone:
    threshold: int
    reward_amount: int
    achieved: bool
    achieved_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def progress_percentage(current_amount, target_amount) -> float:
    """Progress toward the target in percent (0 when target is 0 or missing)."""
    target = float(target_amount or 0)
    if target <= 0:
        return 0.0
    return float(current_amount or 0) / target * 100


def milestone_bonus(commitment_amount) -> int:
    """One-time bonus unlocked at each threshold."""
    return round_half_up(Decimal(str(commitment_amount or 0)) * Decimal(str(MILESTONE_BONUS_RATE)))


def milestone_status(progress: float, threshold: int) -> str:
    """
    'achieved' once progress reaches the threshold, 'near' within the
    lookback window below it, 'pending' otherwise.
    """
    if progress >= threshold:
        return MilestoneStatus.ACHIEVED
    if progress >= threshold - NEAR_WINDOW:
        return MilestoneStatus.NEAR
    return MilestoneStatus.PENDING


def evaluate(current_amount, target_amount, commitment_amount=0) -> List[Milestone]:
    """
    Evaluate every threshold against the current progress.

    Args:
        current_amount: Confirmed earnings on the goal
        target_amount: Goal target
        commitment_amount: Staked amount, base for the bonus

    Returns:
        One Milestone per threshold, ascending
    """
    progress = progress_percentage(current_amount, target_amount)
    bonus = milestone_bonus(commitment_amount)
    return [
        Milestone(threshold=threshold, reward_amount=bonus, achieved=progress >= threshold)
        for threshold in MILESTONE_THRESHOLDS
    ]


def newly_achieved(previous: Iterable[Milestone], evaluation: List[Milestone]) -> List[Milestone]:
    """Thresholds achieved in `evaluation` that were not already achieved in `previous`."""
    already = {m.threshold for m in previous if m.achieved}
    return [m for m in evaluation if m.achieved and m.threshold not in already]


def merge(previous: Iterable[Milestone], evaluation: List[Milestone], achieved_at: str = None) -> List[Milestone]:
    """
    Combine stored milestones with a fresh evaluation.

    Achievement is monotonic: a stored achieved threshold stays achieved (with
    its original timestamp) even if the fresh evaluation says otherwise.
    Newly achieved thresholds are stamped with `achieved_at`.
    """
    stored = {m.threshold: m for m in previous}
    merged = []
    for milestone in evaluation:
        old = stored.get(milestone.threshold)
        if old and old.achieved:
            merged.append(replace(milestone, achieved=True, achieved_at=old.achieved_at))
        elif milestone.achieved:
            merged.append(replace(milestone, achieved_at=achieved_at))
        else:
            merged.append(milestone)
    return merged


def next_milestone(current_amount, target_amount, milestones: List[Milestone]) -> Optional[dict]:
    """
    The first unachieved threshold and the amount still needed to reach it.
    None once every threshold is achieved.
    """
    for milestone in milestones:
        if not milestone.achieved:
            target = float(target_amount or 0)
            needed = target * (milestone.threshold / 100) - float(current_amount or 0)
            return {
                'threshold': milestone.threshold,
                'amount_needed': round(max(needed, 0.0), 2),
                'reward_amount': milestone.reward_amount
            }
    return None


def summarize(milestones: List[Milestone]) -> dict:
    """Bonus totals across all thresholds."""
    total = sum(m.reward_amount for m in milestones)
    earned = sum(m.reward_amount for m in milestones if m.achieved)
    return {
        'total_bonus': total,
        'earned_from_milestones': earned,
        'remaining_rewards': total - earned
    }
