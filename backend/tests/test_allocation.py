"""
Tests for reward allocation and redistribution planning.
"""
from decimal import Decimal

import pytest

from shared.allocation import (
    DEFAULT_TASK_REWARD,
    allocate,
    plan_redistribution,
    remaining_pool,
    round_half_up,
    split_rewards,
)
from shared.models import RedistributionBasis


def _tasks(count):
    return [{'taskId': f"task-{i}"} for i in range(count)]


class TestAllocate:
    """Tests for the per-task equal split."""

    def test_fallback_when_no_tasks(self):
        """No tasks yet: the fixed default reward is returned."""
        assert allocate(0, 100) == 25
        assert allocate(0, 100) == DEFAULT_TASK_REWARD

    def test_fallback_when_no_commitment(self):
        """No stake configured: every task gets the default."""
        assert allocate(3, 0) == 25
        assert allocate(3, None) == 25
        assert allocate(3, Decimal('0')) == 25

    def test_even_split(self):
        """4 tasks sharing 100 get 25 each."""
        assert allocate(4, 100) == 25

    def test_rounds_to_nearest(self):
        """100 / 3 = 33.33 rounds down to 33."""
        assert allocate(3, 100) == 33

    def test_half_rounds_up(self):
        """100 / 8 = 12.5 rounds up to 13, not banker's 12."""
        assert allocate(8, 100) == 13
        assert round_half_up(Decimal('2.5')) == 3

    def test_decimal_commitment(self):
        """DynamoDB numbers come back as Decimal."""
        assert allocate(3, Decimal('50')) == 17

    def test_sum_within_task_count_of_commitment(self):
        """Rounding residue never exceeds one unit per task."""
        for commitment in (1, 7, 50, 99, 100, 250, 1000, 12345):
            for count in range(1, 25):
                per_task = allocate(count, commitment)
                assert per_task >= 0
                assert abs(per_task * count - commitment) <= count, f"{commitment}/{count}"


class TestSplitRewards:
    """Tests for residue handling across a task set."""

    def test_residue_accepted_by_default(self):
        """Without conservation every task gets the same rounded value."""
        assert split_rewards(3, 100) == [33, 33, 33]

    def test_residue_on_last_task_when_conserving(self):
        """The single-task tie-break makes the sum exact."""
        rewards = split_rewards(3, 100, conserve=True)
        assert rewards == [33, 33, 34]
        assert sum(rewards) == 100

    def test_negative_residue_when_rounding_up(self):
        """200 / 3 = 66.67 -> 67 each, last task absorbs the overshoot."""
        rewards = split_rewards(3, 200, conserve=True)
        assert rewards == [67, 67, 66]
        assert sum(rewards) == 200

    def test_empty_task_set(self):
        assert split_rewards(0, 100) == []


class TestPlanRedistribution:
    """Tests for the full overwrite plan."""

    def test_four_tasks_then_delete_one(self):
        """4 tasks at 100 -> 25 each; after a deletion the 3 left get 33 (residue 1)."""
        tasks = _tasks(4)
        plan = plan_redistribution(tasks, 100)
        assert list(plan.values()) == [25, 25, 25, 25]

        plan = plan_redistribution(tasks[1:], 100)
        assert plan == {'task-1': 33, 'task-2': 33, 'task-3': 33}
        assert sum(plan.values()) == 99

    def test_remaining_budget_subtracts_paid_rewards(self):
        """60 left after 40 was paid, split over 2 tasks."""
        plan = plan_redistribution(_tasks(2), 100, rewards_paid=40)
        assert plan == {'task-0': 30, 'task-1': 30}

    def test_total_commitment_basis_ignores_paid_rewards(self):
        """Legacy behavior: always split the original commitment."""
        plan = plan_redistribution(
            _tasks(2), 100, rewards_paid=40, basis=RedistributionBasis.TOTAL_COMMITMENT
        )
        assert plan == {'task-0': 50, 'task-1': 50}

    def test_exhausted_budget_pays_nothing(self):
        """Once the commitment is fully paid out, open tasks are worth 0."""
        plan = plan_redistribution(_tasks(2), 100, rewards_paid=100)
        assert plan == {'task-0': 0, 'task-1': 0}

    def test_no_commitment_uses_fallback(self):
        plan = plan_redistribution(_tasks(2), 0)
        assert plan == {'task-0': 25, 'task-1': 25}

    def test_conserve_keeps_plan_order(self):
        plan = plan_redistribution(_tasks(3), 100, conserve=True)
        assert list(plan.items())[-1] == ('task-2', 34)

    def test_no_tasks(self):
        assert plan_redistribution([], 100) == {}

    def test_unknown_basis(self):
        with pytest.raises(ValueError):
            plan_redistribution(_tasks(2), 100, basis='whatever')

    def test_remaining_pool_never_negative(self):
        assert remaining_pool(100, 130) == Decimal('0')
        assert remaining_pool(Decimal('100'), Decimal('25')) == Decimal('75')
