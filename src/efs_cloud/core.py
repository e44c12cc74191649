import logging
import os
import re
from enum import Enum
from typing import Any, Mapping, Optional

import boto3
from boto3 import Session
from botocore.config import Config

from efs_cloud.exceptions import AWSError

logger = logging.getLogger(__name__)


REGION_PATTERN = re.compile(r"^[a-z]{2}(?:-gov|-iso[a-z]?)?-[a-z]+-\d+$")

REGION_ENV_VARS = ("AWS_REGION", "AWS_DEFAULT_REGION", "REGION")


def get_region(region: Optional[str] = None) -> str:
    """Resolves the AWS region

    Resolution order:
        1. user provided region
        2. region of the default boto3 session
        3. environment variables AWS_REGION, AWS_DEFAULT_REGION and REGION (in that order)

    Args:
        region (Optional[str]): Optional region override. Defaults to None.

    Raises:
        AWSError: If the region is invalid or could not be resolved

    Returns:
        str: AWS region name
    """
    if region is None:
        region = Session().region_name
    if region is None:
        for env_var in REGION_ENV_VARS:
            region = os.environ.get(env_var)
            if region:
                break
    if not region:
        raise AWSError(
            f"Could not resolve region from boto3 session or env vars {REGION_ENV_VARS}"
        )
    if not REGION_PATTERN.match(region):
        raise AWSError(f"{region} is not a valid AWS region")
    return region


def get_client(service_name: str, region: Optional[str] = None, **kwargs):
    region = get_region(region)
    logger.debug("Creating %s client for region %s", service_name, region)
    return boto3.client(service_name, region_name=region, **kwargs)


class AWSService(str, Enum):
    EFS = "efs"

    def get_client(self, region: Optional[str] = None, config: Optional[Config] = None):
        kwargs = {"config": config} if config else {}
        return get_client(self.value, region=region, **kwargs)


def get_client_error_code(error: BaseException) -> Optional[str]:
    """Returns the service error code carried by an exception, if it exposes one

    Any exception with a botocore-style ``response`` mapping qualifies
    (``{"Error": {"Code": ...}}``), not only ``botocore.exceptions.ClientError``.
    """
    response: Any = getattr(error, "response", None)
    if not isinstance(response, Mapping):
        return None
    error_info = response.get("Error")
    if not isinstance(error_info, Mapping):
        return None
    return error_info.get("Code")


def is_client_error_code(error: BaseException, *codes: str) -> bool:
    code = get_client_error_code(error)
    return code is not None and code in codes
