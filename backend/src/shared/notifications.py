"""
User-facing notifications (toasts) published to EventBridge.
The frontend subscribes per user and renders title + description.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import List, Optional

import boto3

from .config import config
from .logging import logger
from .models import NotificationType

events = boto3.client('events', region_name=config.AWS_REGION)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    kind: str
    user_id: Optional[str] = None
    detail: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


class NotificationSink(ABC):
    @abstractmethod
    def send(self, notification: Notification) -> None:
        pass


class EventBridgeNotifier(NotificationSink):
    """Best effort: financial state is already committed when we notify."""

    def __init__(self, bus_name: str = None, source: str = None):
        self.bus_name = bus_name or config.EVENT_BUS_NAME
        self.source = source or config.NOTIFICATION_SOURCE

    def send(self, notification: Notification) -> None:
        try:
            events.put_events(
                Entries=[{
                    'Source': self.source,
                    'DetailType': 'GoalMateNotification',
                    'EventBusName': self.bus_name,
                    'Detail': json.dumps(notification.to_dict(), default=str)
                }]
            )
            logger.info(f"Notification '{notification.kind}' sent to {notification.user_id}")
        except Exception as e:
            logger.error(f"Failed to send notification '{notification.kind}': {e}")


def _money(amount) -> str:
    return f"${amount}"


# =============================================================================
# MESSAGE CONSTRUCTORS
# =============================================================================

def task_added(user_id, task: dict) -> Notification:
    return Notification(
        title='Task Added',
        description=f"New task \"{task['title']}\" has been added to your goal",
        kind=NotificationType.TASK_ADDED,
        user_id=user_id,
        detail={'taskId': task['taskId']}
    )


def tasks_generated(user_id, count: int) -> Notification:
    return Notification(
        title='AI Tasks Generated',
        description=f"{count} new tasks have been added and rewards redistributed",
        kind=NotificationType.TASKS_GENERATED,
        user_id=user_id,
        detail={'count': count}
    )


def task_deleted(user_id, task: dict) -> Notification:
    return Notification(
        title='Task Deleted',
        description='Task has been removed and rewards redistributed',
        kind=NotificationType.TASK_DELETED,
        user_id=user_id,
        detail={'taskId': task['taskId']}
    )


def tasks_cleared(user_id, count: int) -> Notification:
    return Notification(
        title='Tasks Cleared',
        description=f"All {count} tasks were removed and goal progress was reset",
        kind=NotificationType.TASKS_CLEARED,
        user_id=user_id,
        detail={'count': count}
    )


def proof_verified(user_id, task: dict, reward_amount) -> Notification:
    return Notification(
        title='Task Completed! 🎉',
        description=f"Proof verified for \"{task['title']}\". {_money(reward_amount)} added to your progress.",
        kind=NotificationType.PROOF_VERIFIED,
        user_id=user_id,
        detail={'taskId': task['taskId'], 'rewardAmount': reward_amount}
    )


def proof_pending(user_id, task: dict) -> Notification:
    return Notification(
        title='Proof Submitted',
        description=f"Your proof for \"{task['title']}\" will be reviewed by an admin.",
        kind=NotificationType.PROOF_PENDING,
        user_id=user_id,
        detail={'taskId': task['taskId']}
    )


def proof_rejected(user_id, task: dict, feedback: str, suggestions: List[str] = None) -> Notification:
    description = feedback
    if suggestions:
        description = f"{feedback} Suggestions: {'; '.join(suggestions)}"
    return Notification(
        title='Proof Not Verified',
        description=description,
        kind=NotificationType.PROOF_REJECTED,
        user_id=user_id,
        detail={'taskId': task['taskId'], 'suggestions': suggestions or []}
    )


def milestone_achieved(user_id, threshold: int, bonus) -> Notification:
    return Notification(
        title='Milestone Achieved! 🏆',
        description=f"You reached {threshold}% of your goal and unlocked a {_money(bonus)} bonus",
        kind=NotificationType.MILESTONE_ACHIEVED,
        user_id=user_id,
        detail={'threshold': threshold, 'bonusAmount': bonus}
    )


def payment_reviewed(user_id, action: str, goal_id: str) -> Notification:
    approved = action == 'approved'
    return Notification(
        title='Payment Approved ✅' if approved else 'Payment Rejected ❌',
        description=f"Payment submission has been {action}{' and goal activated' if approved else ''}",
        kind=NotificationType.PAYMENT_REVIEWED,
        user_id=user_id,
        detail={'goalId': goal_id, 'action': action}
    )


def withdrawal_reviewed(user_id, action: str, amount) -> Notification:
    approved = action == 'approved'
    return Notification(
        title='Withdrawal Approved ✅' if approved else 'Withdrawal Rejected ❌',
        description=f"Withdrawal request for {_money(amount)} has been {action}"
                    f"{' and balance updated' if approved else ''}",
        kind=NotificationType.WITHDRAWAL_REVIEWED,
        user_id=user_id,
        detail={'amount': amount, 'action': action}
    )
