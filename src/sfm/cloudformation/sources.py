"""
Reading templates and parameter/tag files from disk, S3 or stdin.
"""

import logging
from pathlib import Path
from typing import IO, Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import SourceError
from .reconcile import coerce_mapping

logger = logging.getLogger(__name__)

S3_SCHEME = "s3"


def is_s3_uri(location: str) -> bool:
    """Check if a location is an s3://bucket/key URI."""
    return location.startswith(f"{S3_SCHEME}://")


def split_s3_uri(location: str) -> Tuple[str, str]:
    """Split an s3://bucket/key URI into bucket and key."""
    parsed = urlparse(location)
    bucket = parsed.hostname or ""
    key = parsed.path.lstrip("/")
    if not bucket or not key:
        raise SourceError(f"cant parse url '{location}': expected s3://bucket/key")
    return bucket, key


def read_s3_object(location: str, session: Optional[boto3.Session] = None) -> bytes:
    """Download an object named by an s3:// URI."""
    bucket, key = split_s3_uri(location)
    s3 = (session or boto3.Session()).client("s3")
    try:
        response = s3.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()
    except (ClientError, BotoCoreError) as e:
        raise SourceError(f"cant get object from 's3://{bucket}/{key}': {e}") from e


def read_location(location: str, session: Optional[boto3.Session] = None) -> bytes:
    """Read bytes from a local path or an s3:// URI."""
    if is_s3_uri(location):
        return read_s3_object(location, session)
    try:
        return Path(location).read_bytes()
    except OSError as e:
        raise SourceError(f"can't read file {location}: {e}") from e


def read_template(
    location: Optional[str],
    session: Optional[boto3.Session] = None,
    stdin: Optional[IO[bytes]] = None,
) -> bytes:
    """Read a template body.

    Args:
        location: Local path or s3:// URI; when empty the template is read from stdin
        session: boto3 session used for S3 downloads
        stdin: Binary stream holding a piped template

    Returns:
        The raw template body
    """
    if location:
        if stdin is not None:
            logger.warning("using template file; ignoring stdin")
        body = read_location(location, session)
    elif stdin is not None:
        body = stdin.read()
    else:
        raise SourceError("no template flag supplied and no pipe on stdin")

    if not body:
        raise SourceError("template is empty")
    return body


def load_document(location: str, session: Optional[boto3.Session] = None) -> Any:
    """Load a YAML or JSON document from a local path or s3:// URI."""
    data = read_location(location, session)
    try:
        return yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise SourceError(f"can't unmarshal file {location}: {e}") from e


def load_mapping_file(
    location: Optional[str], session: Optional[boto3.Session] = None
) -> Dict[str, str]:
    """Load a parameter or tag file as a string to string mapping.

    An empty location yields an empty mapping.
    """
    if not location:
        return {}
    return coerce_mapping(load_document(location, session), location)
