"""
Tests for the rule-based proof verification scorer.
"""
from unittest.mock import patch

import pytest

from shared.errors import ValidationError
from shared.verification import (
    FAILED_VERIFICATION,
    HARD_TASK_SUGGESTION,
    ProofSubmission,
    score_course,
    score_github,
    score_image,
    score_proof,
    score_text,
    score_video,
    validate_proof,
    verify_proof,
)

GOOD_COMMITS = 'implemented the login page and fixed bugs'


def github(repo='https://github.com/me/app', commits=GOOD_COMMITS):
    return ProofSubmission(type='github', github_repo=repo, github_commits=commits)


class TestScenarios:
    """End-to-end verdicts for the documented proof examples."""

    def test_github_medium_task_passes(self):
        """30 (repo) + 20 (20-50 chars) + 30 (keyword) = 80."""
        assert len(GOOD_COMMITS) == 41

        result = verify_proof('Build login', 'medium', github(), delay_seconds=0)

        assert result.verified is True
        assert result.confidence == 80
        assert 'solid progress' in result.feedback
        assert result.suggestions is None

    def test_brief_text_on_easy_task_fails(self):
        """A 51-100 char description without reasoning keywords scores 30."""
        text = 'Worked on the task for a while today and made some progress.'
        assert 50 < len(text) <= 100

        result = verify_proof('Write essay', 'easy', ProofSubmission(type='text', text=text), delay_seconds=0)

        assert result.verified is False
        assert result.confidence == 30
        assert any('more specific details' in s for s in result.suggestions)

    def test_hard_task_penalty_flips_a_pass(self):
        """Raw 70 passes on medium, but hard tasks lose 10 below a raw 80."""
        commits = 'Refactored the parser module and updated tests for edge cases'
        assert len(commits) > 50
        proof = github(commits=commits)

        medium = verify_proof('Parser', 'medium', proof, delay_seconds=0)
        hard = verify_proof('Parser', 'hard', proof, delay_seconds=0)

        assert medium.verified is True and medium.confidence == 70
        assert hard.verified is False and hard.confidence == 60
        assert HARD_TASK_SUGGESTION in hard.suggestions

    def test_hard_task_weak_image(self):
        """Image with a short caption: 40 raw, 30 after the hard penalty."""
        proof = ProofSubmission(type='image', image_file='proofs/a.jpg', text='done')
        result = score_proof('Paint wall', 'hard', proof)

        assert result.confidence == 30
        assert result.suggestions[-1] == HARD_TASK_SUGGESTION

    def test_hard_task_at_raw_80_is_not_penalized(self):
        proof = ProofSubmission(type='image', image_file='proofs/a.jpg', text='x' * 31)
        result = score_proof('Paint wall', 'hard', proof)

        assert result.confidence == 80
        assert result.verified is True

    def test_unknown_type(self):
        result = score_proof('Anything', 'easy', ProofSubmission(type='audio'))
        assert result.verified is False
        assert result.confidence == 30
        assert 'Unknown proof type' in result.feedback

    def test_deterministic(self):
        first = verify_proof('Build login', 'medium', github(), delay_seconds=0)
        second = verify_proof('Build login', 'medium', github(), delay_seconds=0)
        assert first == second


class TestSubScorers:
    """Tests for the weighted signals of each proof type."""

    def test_github_signals(self):
        assert score_github(github(repo='https://gitlab.com/me/app', commits='')) == 0
        assert score_github(github(commits='x' * 21)) == 50
        assert score_github(github(commits='added ' + 'x' * 60)) == 100

    def test_course_signals(self):
        proof = ProofSubmission(
            type='course',
            course_platform='Coursera',
            course_progress='Completed all 12 modules and got the certificate'
        )
        assert score_course(proof) == 100
        assert score_course(ProofSubmission(type='course', course_progress='week 1')) == 0

    def test_image_signals(self):
        assert score_image(ProofSubmission(type='image', image_file='k', text='x' * 101)) == 100

    def test_video_signals(self):
        assert score_video(ProofSubmission(type='video', video_file='k')) == 50
        assert score_video(ProofSubmission(type='video', video_file='k', text='x' * 21)) == 80
        assert score_video(ProofSubmission(type='video', video_file='k', text='x' * 81)) == 100

    def test_text_signals(self):
        assert score_text(ProofSubmission(type='text', text='x' * 101)) == 50
        assert score_text(ProofSubmission(type='text', text='because ' + 'x' * 200)) == 100


class TestFallback:
    """Scoring errors never escape verify_proof."""

    def test_exception_becomes_failed_result(self):
        with patch('shared.verification.score_proof', side_effect=RuntimeError('boom')):
            result = verify_proof('Build login', 'medium', github(), delay_seconds=0)

        assert result == FAILED_VERIFICATION
        assert result.verified is False
        assert result.confidence == 0
        assert result.suggestions == ['Try submitting again', 'Contact support if issue persists']

    def test_simulated_delay(self):
        with patch('shared.verification.time.sleep') as sleep:
            verify_proof('Build login', 'medium', github(), delay_seconds=1.5)
        sleep.assert_called_once_with(1.5)


class TestValidation:
    """Boundary checks before scoring."""

    def test_from_payload_wire_names(self):
        proof = ProofSubmission.from_payload({
            'type': 'GitHub',
            'githubRepo': 'https://github.com/me/app',
            'githubCommits': GOOD_COMMITS
        })
        assert proof == github()

    def test_missing_required_field(self):
        with pytest.raises(ValidationError, match='githubRepo'):
            validate_proof(ProofSubmission(type='github', github_commits=GOOD_COMMITS))

        with pytest.raises(ValidationError, match='videoFile'):
            validate_proof(ProofSubmission(type='video', text='look at this'))

    def test_blank_text_rejected(self):
        with pytest.raises(ValidationError):
            validate_proof(ProofSubmission(type='text', text='   '))

    def test_unknown_type_left_to_the_scorer(self):
        """Unknown types are scored (and rejected) rather than refused."""
        validate_proof(ProofSubmission(type='audio', text='x'))

    def test_missing_type_rejected(self):
        with pytest.raises(ValidationError, match='Missing proof type'):
            validate_proof(ProofSubmission.from_payload({'text': 'did it'}))

    def test_valid_proof(self):
        validate_proof(github())
