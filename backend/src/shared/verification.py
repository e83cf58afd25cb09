"""
Proof Verification - rule-based scoring of task completion evidence.

Each proof type has its own scorer adding weighted signals up to 100.
Hard tasks lose 10 points when their raw score is below 80, then the
final score is compared to the pass cutoff (70).

Supported proof types:
- github: repository URL + commit description
- course: platform + progress description
- image / video: attached file + description
- text: free-form description
"""
import time
from dataclasses import dataclass, asdict
from typing import List, Optional

from .config import config
from .errors import ValidationError
from .logging import logger
from .models import ProofType, TaskDifficulty

PASS_SCORE = config.VERIFICATION_PASS_SCORE
GOOD_SCORE = 70          # feedback switches to the positive template
PARTIAL_SCORE = 50       # github middle band
UNKNOWN_TYPE_SCORE = 30
HARD_TASK_RAW_LIMIT = 80
HARD_TASK_PENALTY = 10

GITHUB_HOST_MARKER = 'github.com'
WORK_KEYWORDS = ('implemented', 'added', 'fixed', 'created', 'built', 'developed')
COMPLETION_KEYWORDS = ('completed', 'finished', 'certificate', 'passed', 'graduated')
DETAIL_KEYWORDS = ('because', 'first', 'then', 'finally', 'result', 'achieved')

HARD_TASK_SUGGESTION = 'Hard tasks require more comprehensive evidence'


@dataclass(frozen=True)
class ProofSubmission:
    """A single proof attempt. File fields hold store keys, not content."""
    type: str
    text: Optional[str] = None
    github_repo: Optional[str] = None
    github_commits: Optional[str] = None
    course_progress: Optional[str] = None
    course_platform: Optional[str] = None
    image_file: Optional[str] = None
    video_file: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'ProofSubmission':
        """Build from the request body field names."""
        return cls(
            type=str(payload.get('type') or '').strip().lower(),
            text=payload.get('text'),
            github_repo=payload.get('githubRepo'),
            github_commits=payload.get('githubCommits'),
            course_progress=payload.get('courseProgress'),
            course_platform=payload.get('coursePlatform'),
            image_file=payload.get('imageFile'),
            video_file=payload.get('videoFile'),
        )

    def to_record(self) -> dict:
        """Non-empty fields using the stored (camelCase) names."""
        fields = {
            'proofType': self.type,
            'text': self.text,
            'githubRepo': self.github_repo,
            'githubCommits': self.github_commits,
            'courseProgress': self.course_progress,
            'coursePlatform': self.course_platform,
            'imageFile': self.image_file,
            'videoFile': self.video_file,
        }
        return {k: v for k, v in fields.items() if v}


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    confidence: int
    feedback: str
    suggestions: Optional[List[str]] = None

    def to_dict(self) -> dict:
        return asdict(self)


# Returned whenever scoring itself blows up
FAILED_VERIFICATION = VerificationResult(
    verified=False,
    confidence=0,
    feedback='Verification failed due to technical error. Please try again.',
    suggestions=['Try submitting again', 'Contact support if issue persists']
)


# =============================================================================
# INPUT VALIDATION
# =============================================================================

REQUIRED_FIELDS = {
    ProofType.GITHUB: ('github_repo', 'githubRepo'),
    ProofType.COURSE: ('course_progress', 'courseProgress'),
    ProofType.IMAGE: ('image_file', 'imageFile'),
    ProofType.VIDEO: ('video_file', 'videoFile'),
    ProofType.TEXT: ('text', 'text'),
}


def validate_proof(proof: ProofSubmission) -> None:
    """
    Boundary check before scoring.

    Raises:
        ValidationError: no proof type, or the type's required field is empty

    Unknown types pass through; the scorer rejects them with its own feedback.
    """
    if not proof.type:
        raise ValidationError(f"Missing proof type. Must be one of: {', '.join(ProofType.ALL)}")
    if proof.type not in REQUIRED_FIELDS:
        return

    attribute, field_name = REQUIRED_FIELDS[proof.type]
    value = getattr(proof, attribute)
    if not value or not str(value).strip():
        raise ValidationError(f"Missing {field_name} for {proof.type} proof")


# =============================================================================
# PER-TYPE SCORERS
# =============================================================================

def _length(value: Optional[str]) -> int:
    return len(value) if value else 0


def _contains_any(value: Optional[str], keywords) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(keyword in lowered for keyword in keywords)


def score_github(proof: ProofSubmission) -> int:
    score = 0
    if proof.github_repo and GITHUB_HOST_MARKER in proof.github_repo:
        score += 30

    commits_length = _length(proof.github_commits)
    if commits_length > 50:
        score += 40
    elif commits_length > 20:
        score += 20

    if _contains_any(proof.github_commits, WORK_KEYWORDS):
        score += 30
    return min(score, 100)


def score_course(proof: ProofSubmission) -> int:
    score = 0
    if proof.course_platform:
        score += 20
    if _length(proof.course_progress) > 30:
        score += 50
    if _contains_any(proof.course_progress, COMPLETION_KEYWORDS):
        score += 30
    return min(score, 100)


def score_image(proof: ProofSubmission) -> int:
    score = 0
    if proof.image_file:
        score += 40
    text_length = _length(proof.text)
    if text_length > 30:
        score += 40
    if text_length > 100:
        score += 20
    return min(score, 100)


def score_video(proof: ProofSubmission) -> int:
    score = 0
    if proof.video_file:
        score += 50
    text_length = _length(proof.text)
    if text_length > 20:
        score += 30
    if text_length > 80:
        score += 20
    return min(score, 100)


def score_text(proof: ProofSubmission) -> int:
    score = 0
    text_length = _length(proof.text)
    if text_length > 100:
        score += 50
    elif text_length > 50:
        score += 30
    if _contains_any(proof.text, DETAIL_KEYWORDS):
        score += 30
    if text_length > 200:
        score += 20
    return min(score, 100)


# =============================================================================
# FEEDBACK
# =============================================================================

def github_feedback(score, task_title):
    if score >= GOOD_SCORE:
        return (f'Great! Your GitHub repository shows solid progress. The commits and code '
                f'changes align well with the task "{task_title}".'), []
    if score >= PARTIAL_SCORE:
        return (f'Good progress on GitHub, but could use more substantial commits for the task "{task_title}".',
                ['Add more detailed commit messages', 'Include more substantial code changes'])
    return (f'The GitHub repository doesn\'t show enough evidence of completing "{task_title}".',
            ['Add more commits related to the task', 'Include README or documentation'])


def course_feedback(score, task_title):
    if score >= GOOD_SCORE:
        return f'Excellent! Your course progress clearly demonstrates completion of "{task_title}".', []
    return (f'Course progress is noted, but more details needed to verify completion of "{task_title}".',
            ['Provide certificate or completion screenshot', 'Add more specific learning details'])


def image_feedback(score, task_title):
    if score >= GOOD_SCORE:
        return f'Image evidence clearly shows completion of "{task_title}". Well documented!', []
    return (f'Image uploaded but description could be more detailed for "{task_title}".',
            ['Add more detailed description', 'Include multiple angles if applicable'])


def video_feedback(score, task_title):
    if score >= GOOD_SCORE:
        return f'Excellent video demonstration of "{task_title}" completion!', []
    return (f'Video uploaded but may need better explanation of how it relates to "{task_title}".',
            ['Add clearer narration', 'Show step-by-step process'])


def text_feedback(score, task_title):
    if score >= GOOD_SCORE:
        return f'Detailed description clearly explains completion of "{task_title}".', []
    return (f'Description is too brief to verify completion of "{task_title}".',
            ['Provide more specific details', 'Include steps taken and results achieved'])


SCORERS = {
    ProofType.GITHUB: (score_github, github_feedback),
    ProofType.COURSE: (score_course, course_feedback),
    ProofType.IMAGE: (score_image, image_feedback),
    ProofType.VIDEO: (score_video, video_feedback),
    ProofType.TEXT: (score_text, text_feedback),
}


# =============================================================================
# ENTRY POINTS
# =============================================================================

def adjust_for_difficulty(score: int, task_difficulty: str, suggestions: List[str]) -> int:
    """Hard tasks lose HARD_TASK_PENALTY points when below HARD_TASK_RAW_LIMIT."""
    if task_difficulty == TaskDifficulty.HARD and score < HARD_TASK_RAW_LIMIT:
        suggestions.append(HARD_TASK_SUGGESTION)
        return max(score - HARD_TASK_PENALTY, 0)
    return score


def score_proof(task_title: str, task_difficulty: str, proof: ProofSubmission) -> VerificationResult:
    """
    Score a proof against its task. Pure and deterministic.
    May raise on malformed input; use verify_proof() for the safe wrapper.
    """
    scorer = SCORERS.get(proof.type)
    if scorer is None:
        score = UNKNOWN_TYPE_SCORE
        feedback = 'Unknown proof type. Please select a valid verification method.'
        suggestions = []
    else:
        score_fn, feedback_fn = scorer
        score = score_fn(proof)
        feedback, suggestions = feedback_fn(score, task_title)
        suggestions = list(suggestions)

    score = adjust_for_difficulty(score, task_difficulty, suggestions)

    return VerificationResult(
        verified=score >= PASS_SCORE,
        confidence=score,
        feedback=feedback,
        suggestions=suggestions or None
    )


def verify_proof(
    task_title: str,
    task_difficulty: str,
    proof: ProofSubmission,
    delay_seconds: float = None
) -> VerificationResult:
    """
    Verify a proof submission. Never raises.

    Args:
        task_title: Title of the task being completed
        task_difficulty: easy | medium | hard
        proof: The submitted evidence
        delay_seconds: Simulated processing latency (defaults to config)

    Returns:
        VerificationResult; FAILED_VERIFICATION if scoring errors out
    """
    delay = config.VERIFICATION_DELAY_SECONDS if delay_seconds is None else delay_seconds
    try:
        logger.info(f"Verifying {proof.type} proof for task '{task_title}' ({task_difficulty})")
        if delay > 0:
            time.sleep(delay)

        result = score_proof(task_title, task_difficulty, proof)
        logger.info(f"Verification result: verified={result.verified}, confidence={result.confidence}")
        return result

    except Exception as e:
        logger.error(f"Error in proof verification: {e}")
        return FAILED_VERIFICATION
