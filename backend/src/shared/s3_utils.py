"""
S3 utility functions for proof files.
Files are uploaded by the client; the backend only signs read links for reviewers.
"""
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from .config import config
from .logging import logger

# S3 client with custom signature version for presigned URLs
s3_client = boto3.client(
    's3',
    region_name=config.AWS_REGION,
    config=BotoConfig(signature_version='s3v4')
)

PROOF_FILE_FIELDS = ('imageFile', 'videoFile')


def generate_presigned_url(
    s3_key: str,
    expiration: int = 3600,
    bucket_name: str = None
) -> str:
    """
    Generate a presigned URL for a proof file download.

    Args:
        s3_key: The S3 object key (e.g., 'proofs/<userId>/uuid.jpg')
        expiration: URL expiration time in seconds (default 1 hour)
        bucket_name: Optional bucket name, defaults to config.MEDIA_BUCKET

    Returns:
        Presigned URL string or original key if generation fails
    """
    if not s3_key:
        return s3_key

    bucket = bucket_name or config.MEDIA_BUCKET
    if not bucket:
        logger.warning("No MEDIA_BUCKET configured, returning original key")
        return s3_key

    if s3_key.startswith('http://') or s3_key.startswith('https://'):
        bucket_url = f"https://{bucket}.s3.amazonaws.com/"
        if not s3_key.startswith(bucket_url):
            # External link (e.g. a video hosting page)
            return s3_key
        s3_key = s3_key[len(bucket_url):]

    try:
        return s3_client.generate_presigned_url(
            'get_object',
            Params={'Bucket': bucket, 'Key': s3_key},
            ExpiresIn=expiration
        )
    except ClientError as e:
        logger.error(f"Error generating presigned URL for {s3_key}: {e}")
        return s3_key


def sign_proof_files(submission: dict, expiration: int = 3600) -> dict:
    """Copy of the submission with image/video keys replaced by presigned links."""
    signed = dict(submission)
    for field in PROOF_FILE_FIELDS:
        if signed.get(field):
            signed[field] = generate_presigned_url(signed[field], expiration)
    return signed
