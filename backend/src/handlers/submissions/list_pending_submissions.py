"""
List Pending Submissions Handler (admin).
GET /admin/submissions?status=pending_review

Proof files are returned as presigned S3 links.
"""
from shared.auth import require_admin
from shared.errors import GoalMateError, ValidationError
from shared.logging import logger, log_event
from shared.models import SubmissionStatus
from shared.s3_utils import sign_proof_files
from shared.store import DynamoGoalStore
from shared.utils import format_response, error_response, get_query_param

store = DynamoGoalStore()


def handler(event, context):
    log_event(event)
    try:
        require_admin(event)
        status = get_query_param(event, 'status', SubmissionStatus.PENDING_REVIEW)
        if status not in SubmissionStatus.ALL:
            raise ValidationError(f"Invalid status '{status}'")

        submissions = sorted(store.list_submissions(status=status), key=lambda s: s.get('submittedAt', ''))
        return format_response(200, {
            'submissions': [sign_proof_files(s) for s in submissions],
            'count': len(submissions)
        })

    except GoalMateError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing submissions: {e}")
        return format_response(500, {'title': 'Error', 'message': 'Internal Server Error'})
