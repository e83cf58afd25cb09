"""
Reward allocation - splits a goal's committed stake across its open tasks.

Every change to a goal's task set (add, delete, bulk generate, completion)
triggers a full redistribution: each remaining task's rewardAmount is
overwritten with the freshly computed value. Rewards are whole currency units.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Sequence

from .config import config
from .models import RedistributionBasis

# Used before any stake exists on the goal
DEFAULT_TASK_REWARD = config.DEFAULT_TASK_REWARD


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def round_half_up(value) -> int:
    """Round to a whole unit, halves away from zero (0.5 -> 1)."""
    return int(_to_decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def allocate(task_count: int, commitment_amount) -> int:
    """
    Per-task reward for an equal split of the commitment.

    Args:
        task_count: Number of open tasks on the goal
        commitment_amount: The staked amount (or pool) to split

    Returns:
        round(commitment_amount / task_count), or DEFAULT_TASK_REWARD when
        there are no tasks or no commitment is configured
    """
    amount = _to_decimal(commitment_amount)
    if task_count <= 0 or amount <= 0:
        return DEFAULT_TASK_REWARD
    return round_half_up(amount / Decimal(task_count))


def remaining_pool(commitment_amount, rewards_paid) -> Decimal:
    """Commitment minus task rewards already credited, never negative."""
    remaining = _to_decimal(commitment_amount) - _to_decimal(rewards_paid)
    return max(remaining, Decimal('0'))


def split_rewards(task_count: int, amount, conserve: bool = False) -> List[int]:
    """
    Reward for each of `task_count` tasks.

    All tasks get allocate(task_count, amount). With conserve=True the rounding
    residue goes to the last task only, so the rewards sum to round(amount).
    """
    if task_count <= 0:
        return []

    per_task = allocate(task_count, amount)
    rewards = [per_task] * task_count

    if conserve and _to_decimal(amount) > 0:
        residue = round_half_up(amount) - per_task * task_count
        rewards[-1] = max(per_task + residue, 0)

    return rewards


def plan_redistribution(
    tasks: Sequence[dict],
    commitment_amount,
    rewards_paid=0,
    basis: str = RedistributionBasis.REMAINING_BUDGET,
    conserve: bool = False
) -> Dict[str, int]:
    """
    Build the full overwrite plan {taskId: rewardAmount} for a goal's open tasks.

    Basis:
        - remaining_budget: split commitment minus rewards already paid
        - total_commitment: split the original commitment every time
          (legacy behavior; the remaining tasks can be owed more than is left)

    A goal with a commitment whose remaining budget is exhausted gets zero
    rewards rather than the no-commitment fallback.
    """
    if not tasks:
        return {}

    commitment = _to_decimal(commitment_amount)

    if basis == RedistributionBasis.TOTAL_COMMITMENT or commitment <= 0:
        pool = commitment
    elif basis == RedistributionBasis.REMAINING_BUDGET:
        pool = remaining_pool(commitment, rewards_paid)
        if pool <= 0:
            return {task['taskId']: 0 for task in tasks}
    else:
        raise ValueError(f"Unknown redistribution basis: {basis}")

    rewards = split_rewards(len(tasks), pool, conserve=conserve and commitment > 0)
    return {task['taskId']: reward for task, reward in zip(tasks, rewards)}
