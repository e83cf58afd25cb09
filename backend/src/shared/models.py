"""
Data models and status constants for the goal commitment backend.
Task lifecycle: Open → PendingReview → Approved (credited, removed) / Rejected (open again)
"""


class GoalStatus:
    """Goal lifecycle statuses."""
    INACTIVE = 'inactive'    # Created, stake not yet approved
    ACTIVE = 'active'
    COMPLETED = 'completed'
    FAILED = 'failed'


class TaskDifficulty:
    """Declared task difficulty."""
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'

    ALL = (EASY, MEDIUM, HARD)


class TaskState:
    """Per-task review state."""
    OPEN = 'open'
    PENDING_REVIEW = 'pending_review'


class ProofType:
    """Supported proof artifact types."""
    GITHUB = 'github'
    COURSE = 'course'
    IMAGE = 'image'
    VIDEO = 'video'
    TEXT = 'text'

    ALL = (GITHUB, COURSE, IMAGE, VIDEO, TEXT)


class SubmissionStatus:
    """Proof submission review statuses."""
    PENDING_REVIEW = 'pending_review'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    # Auto-approved, reward credit in flight; closed as failed if the credit never lands
    PROCESSING = 'processing'
    FAILED = 'failed'

    ALL = (PENDING_REVIEW, APPROVED, REJECTED, PROCESSING, FAILED)


class ReviewStatus:
    """Admin review statuses for payments and withdrawals."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class ReviewAction:
    """Admin decisions."""
    APPROVE = 'approved'
    REJECT = 'rejected'

    ALL = (APPROVE, REJECT)


class RedistributionBasis:
    """Which pool is split across the open tasks."""
    REMAINING_BUDGET = 'remaining_budget'   # commitment minus rewards already paid
    TOTAL_COMMITMENT = 'total_commitment'   # legacy behavior, over-pays in aggregate


class NotificationType:
    """User-facing notification kinds."""
    TASK_ADDED = 'task_added'
    TASKS_GENERATED = 'tasks_generated'
    TASK_DELETED = 'task_deleted'
    TASKS_CLEARED = 'tasks_cleared'
    PROOF_VERIFIED = 'proof_verified'
    PROOF_PENDING = 'proof_pending'
    PROOF_REJECTED = 'proof_rejected'
    MILESTONE_ACHIEVED = 'milestone_achieved'
    PAYMENT_REVIEWED = 'payment_reviewed'
    WITHDRAWAL_REVIEWED = 'withdrawal_reviewed'
