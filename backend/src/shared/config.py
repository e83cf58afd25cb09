"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the goal commitment backend.
"""
import os


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # DynamoDB Tables
    GOALS_TABLE = os.environ.get('GOALS_TABLE', '')
    TASKS_TABLE = os.environ.get('TASKS_TABLE', '')
    PROOF_SUBMISSIONS_TABLE = os.environ.get('PROOF_SUBMISSIONS_TABLE', '')
    MILESTONES_TABLE = os.environ.get('MILESTONES_TABLE', '')
    PAYMENT_SUBMISSIONS_TABLE = os.environ.get('PAYMENT_SUBMISSIONS_TABLE', '')
    WITHDRAWAL_REQUESTS_TABLE = os.environ.get('WITHDRAWAL_REQUESTS_TABLE', '')
    WALLETS_TABLE = os.environ.get('WALLETS_TABLE', '')

    # S3 Buckets (proof files are uploaded by the client, we only sign links)
    MEDIA_BUCKET = os.environ.get('MEDIA_BUCKET', '')

    # EventBridge notifications (toasts)
    EVENT_BUS_NAME = os.environ.get('EVENT_BUS_NAME', 'default')
    NOTIFICATION_SOURCE = os.environ.get('NOTIFICATION_SOURCE', 'goalmate.notifications')

    # Reward allocation
    DEFAULT_TASK_REWARD = int(os.environ.get('DEFAULT_TASK_REWARD', '25'))
    REDISTRIBUTION_BASIS = os.environ.get('REDISTRIBUTION_BASIS', 'remaining_budget')
    CONSERVE_REWARD_RESIDUE = _env_bool('CONSERVE_REWARD_RESIDUE')
    MAX_COMMITMENT = int(os.environ.get('MAX_COMMITMENT', '100000'))

    # Proof verification
    VERIFICATION_PASS_SCORE = int(os.environ.get('VERIFICATION_PASS_SCORE', '70'))
    VERIFICATION_DELAY_SECONDS = float(os.environ.get('VERIFICATION_DELAY_SECONDS', '0'))
    REQUIRE_ADMIN_REVIEW = _env_bool('REQUIRE_ADMIN_REVIEW')

    # Milestones
    MILESTONE_BONUS_RATE = float(os.environ.get('MILESTONE_BONUS_RATE', '0.25'))
    MILESTONE_NEAR_WINDOW = int(os.environ.get('MILESTONE_NEAR_WINDOW', '10'))
    CREDIT_MILESTONE_BONUS = _env_bool('CREDIT_MILESTONE_BONUS')

    # Store retries for full reward redistribution
    STORE_MAX_RETRIES = int(os.environ.get('STORE_MAX_RETRIES', '3'))

    # Wallet
    MIN_WITHDRAWAL = int(os.environ.get('MIN_WITHDRAWAL', '1'))


config = Config()
