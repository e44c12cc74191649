__all__ = [
    "EFSCloud",
    "get_available_mount_targets",
    "get_mount_target_for_az",
    "parse_efs_tags",
]

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, NoReturn, Optional, Sequence

from aibs_informatics_core.utils.logging import LoggingMixin
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from efs_cloud.constants.efs import (
    ACCESS_DENIED_EXCEPTION,
    ACCESS_POINT_NOT_FOUND,
    DESCRIBE_ACCESS_POINTS_MAX_RESULTS,
    FILE_SYSTEM_NOT_FOUND,
    MOUNT_TARGET_AVAILABLE_STATE,
)
from efs_cloud.core import AWSService, get_region, is_client_error_code
from efs_cloud.exceptions import AccessDeniedError, AWSError, ResourceNotFoundError
from efs_cloud.models import (
    AccessPoint,
    AccessPointOptions,
    CloudMetadata,
    FileSystem,
    MountTarget,
    PosixUser,
)

if TYPE_CHECKING:  # pragma: no cover
    from mypy_boto3_efs import EFSClient
    from mypy_boto3_efs.type_defs import (
        AccessPointDescriptionTypeDef,
        CreateAccessPointRequestRequestTypeDef,
        MountTargetDescriptionTypeDef,
        TagTypeDef,
    )
else:
    EFSClient = object
    AccessPointDescriptionTypeDef = dict
    CreateAccessPointRequestRequestTypeDef = dict
    MountTargetDescriptionTypeDef = dict
    TagTypeDef = dict


logger = logging.getLogger(__name__)

BOTO_ERRORS = (BotoCoreError, ClientError)

get_efs_client = AWSService.EFS.get_client

MountTargetChooser = Callable[
    [Sequence[MountTargetDescriptionTypeDef]], MountTargetDescriptionTypeDef
]


def parse_efs_tags(tags: Dict[str, str]) -> List[TagTypeDef]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def get_available_mount_targets(
    mount_targets: Sequence[MountTargetDescriptionTypeDef],
) -> List[MountTargetDescriptionTypeDef]:
    return [
        mt for mt in mount_targets if mt.get("LifeCycleState") == MOUNT_TARGET_AVAILABLE_STATE
    ]


def get_mount_target_for_az(
    mount_targets: Sequence[MountTargetDescriptionTypeDef], az_name: str
) -> Optional[MountTargetDescriptionTypeDef]:
    for mt in mount_targets:
        if mt.get("AvailabilityZoneName") == az_name:
            return mt
    logger.info(f"There is no mount target matching availability zone {az_name}")
    return None


def _raise_translated_error(
    error: Exception, message: str, not_found_code: Optional[str] = None
) -> NoReturn:
    if is_client_error_code(error, ACCESS_DENIED_EXCEPTION):
        raise AccessDeniedError(f"{message}: access denied") from error
    if not_found_code and is_client_error_code(error, not_found_code):
        raise ResourceNotFoundError(f"{message}: resource was not found") from error
    raise AWSError(f"{message}: {error}") from error


@dataclass
class EFSCloud(LoggingMixin):
    """Access point, file system and mount target operations against EFS

    Every method makes a fresh call to EFS and translates service errors into
    AccessDeniedError, ResourceNotFoundError or AWSError. Nothing is cached, so
    one instance can be shared across threads.

    Args:
        efs_client (EFSClient): boto3 EFS client
        metadata (Optional[CloudMetadata]): region/instance context of the caller
        choose (MountTargetChooser): picks a mount target when no availability zone
            matches. Defaults to random.choice.
    """

    efs_client: EFSClient
    metadata: Optional[CloudMetadata] = None
    choose: MountTargetChooser = random.choice

    @classmethod
    def create(
        cls,
        region: Optional[str] = None,
        config: Optional[Config] = None,
        metadata: Optional[CloudMetadata] = None,
    ) -> "EFSCloud":
        """Builds an EFSCloud with a new EFS client

        Timeouts configured on `config` bound how long each call may block.
        """
        region = get_region(metadata.region if metadata else region)
        efs_client = get_efs_client(region=region, config=config)
        logger.debug(f"EFS client created using endpoint {efs_client.meta.endpoint_url}")
        return cls(efs_client=efs_client, metadata=metadata or CloudMetadata(region=region))

    def get_metadata(self) -> CloudMetadata:
        if self.metadata is None:
            raise AWSError("No cloud metadata was provided")
        return self.metadata

    def create_access_point(
        self,
        client_token: str,
        options: AccessPointOptions,
        reuse_access_point: bool = False,
    ) -> AccessPoint:
        """Creates an access point, or reuses one previously created with the same token

        Args:
            client_token (str): idempotency token of the creation request
            options (AccessPointOptions): access point parameters
            reuse_access_point (bool): If True, an existing access point on the file
                system created with `client_token` is returned instead. Defaults to False.

        Raises:
            AccessDeniedError: if EFS denies the request
            AWSError: for any other failure

        Returns:
            AccessPoint: id, file system id and the requested capacity
        """
        if reuse_access_point:
            existing = self._find_access_point_by_client_token(client_token, options)
            if existing is not None:
                self.logger.info(f"Existing access point found: {existing}")
                return AccessPoint(
                    access_point_id=existing.access_point_id,
                    file_system_id=existing.file_system_id,
                    capacity_gib=options.capacity_gib,
                )

        request: CreateAccessPointRequestRequestTypeDef = {
            "ClientToken": client_token,
            "FileSystemId": options.file_system_id,
            "PosixUser": {"Uid": options.uid, "Gid": options.gid},
            "RootDirectory": {
                "CreationInfo": {
                    "OwnerUid": options.uid,
                    "OwnerGid": options.gid,
                    "Permissions": options.directory_perms,
                },
                "Path": options.directory_path,
            },
            "Tags": parse_efs_tags(options.tags),
        }
        self.logger.debug(f"Calling CreateAccessPoint with request: {request}")
        try:
            response = self.efs_client.create_access_point(**request)
        except BOTO_ERRORS as e:
            _raise_translated_error(e, "Failed to create access point")
        self.logger.debug(f"CreateAccessPoint response: {response}")

        return AccessPoint(
            access_point_id=response["AccessPointId"],
            file_system_id=response["FileSystemId"],
            capacity_gib=options.capacity_gib,
        )

    def delete_access_point(self, access_point_id: str) -> None:
        try:
            self.efs_client.delete_access_point(AccessPointId=access_point_id)
        except BOTO_ERRORS as e:
            _raise_translated_error(
                e,
                f"Failed to delete access point {access_point_id}",
                not_found_code=ACCESS_POINT_NOT_FOUND,
            )

    def describe_access_point(self, access_point_id: str) -> AccessPoint:
        """Fetches a single access point by id

        Raises:
            AccessDeniedError: if EFS denies the request
            ResourceNotFoundError: if EFS reports the access point does not exist
            AWSError: for any other failure, including a result that does not
                contain exactly one access point
        """
        try:
            access_points = self._describe_access_points(AccessPointId=access_point_id)
        except BOTO_ERRORS as e:
            _raise_translated_error(
                e, "Describe access point failed", not_found_code=ACCESS_POINT_NOT_FOUND
            )

        if len(access_points) != 1:
            raise AWSError(
                "DescribeAccessPoint failed. Expected exactly 1 access point in result, "
                f"however received {len(access_points)} access points"
            )
        access_point = access_points[0]
        return AccessPoint(
            access_point_id=access_point["AccessPointId"],
            file_system_id=access_point["FileSystemId"],
            root_directory=access_point.get("RootDirectory", {}).get("Path"),
        )

    def list_access_points(self, file_system_id: str) -> List[AccessPoint]:
        """Lists access points of a file system

        An unknown file system, or one we may not inspect, yields an empty list.
        """
        try:
            descriptions = self._describe_access_points(FileSystemId=file_system_id)
        except BOTO_ERRORS as e:
            if is_client_error_code(e, ACCESS_DENIED_EXCEPTION, FILE_SYSTEM_NOT_FOUND):
                self.logger.warning(f"Cannot list access points of {file_system_id}: {e}")
                return []
            raise AWSError(f"List access points failed: {e}") from e

        access_points: List[AccessPoint] = []
        for description in descriptions:
            posix_user = description.get("PosixUser")
            access_points.append(
                AccessPoint(
                    access_point_id=description["AccessPointId"],
                    file_system_id=description["FileSystemId"],
                    # NOTE: uid is read from Gid as well. Kept as-is until confirmed
                    #       whether callers depend on it.
                    posix_user=(
                        PosixUser(uid=posix_user["Gid"], gid=posix_user["Gid"])
                        if posix_user
                        else None
                    ),
                )
            )
        return access_points

    def describe_file_system(self, file_system_id: str) -> FileSystem:
        self.logger.debug(f"Calling DescribeFileSystems for {file_system_id}")
        try:
            response = self.efs_client.describe_file_systems(FileSystemId=file_system_id)
        except BOTO_ERRORS as e:
            _raise_translated_error(
                e, "Describe file system failed", not_found_code=FILE_SYSTEM_NOT_FOUND
            )

        file_systems = response.get("FileSystems", [])
        if len(file_systems) != 1:
            raise AWSError(
                "DescribeFileSystem failed. Expected exactly 1 file system in result, "
                f"however received {len(file_systems)} file systems"
            )
        return FileSystem(file_system_id=file_systems[0]["FileSystemId"])

    def describe_mount_targets(
        self, file_system_id: str, az_name: Optional[str] = None
    ) -> MountTarget:
        """Picks an available mount target of a file system

        The mount target in `az_name` is preferred. If no zone is given, or the zone
        has no available mount target, one of the available mount targets is chosen.

        Raises:
            AccessDeniedError: if EFS denies the request
            ResourceNotFoundError: if the file system does not exist
            AWSError: if the file system has no mount targets, none of them is
                available, or for any other failure
        """
        self.logger.debug(f"Calling DescribeMountTargets for {file_system_id}")
        try:
            response = self.efs_client.describe_mount_targets(FileSystemId=file_system_id)
        except BOTO_ERRORS as e:
            _raise_translated_error(
                e, "Describe mount targets failed", not_found_code=FILE_SYSTEM_NOT_FOUND
            )

        mount_targets = response.get("MountTargets", [])
        if not mount_targets:
            raise AWSError(
                f"Cannot find mount targets for file system {file_system_id}. "
                "Please create mount targets for file system."
            )

        available_mount_targets = get_available_mount_targets(mount_targets)
        if not available_mount_targets:
            raise AWSError(
                f"No mount target for file system {file_system_id} is in available state. "
                "Please retry in 5 minutes."
            )

        mount_target = None
        if az_name:
            mount_target = get_mount_target_for_az(available_mount_targets, az_name)
        if mount_target is None:
            self.logger.info("Picking a random mount target from available mount targets")
            mount_target = self.choose(available_mount_targets)

        return MountTarget(
            az_name=mount_target.get("AvailabilityZoneName", ""),
            az_id=mount_target.get("AvailabilityZoneId", ""),
            mount_target_id=mount_target["MountTargetId"],
            ip_address=mount_target.get("IpAddress", ""),
        )

    def _find_access_point_by_client_token(
        self, client_token: str, options: AccessPointOptions
    ) -> Optional[AccessPoint]:
        self.logger.debug(f"AccessPointOptions to find access point: {options}")
        self.logger.info(f"ClientToken to find access point: {client_token}")
        try:
            descriptions = self._describe_access_points(
                FileSystemId=options.file_system_id,
                MaxResults=DESCRIBE_ACCESS_POINTS_MAX_RESULTS,
            )
        except BOTO_ERRORS as e:
            if is_client_error_code(e, ACCESS_DENIED_EXCEPTION, FILE_SYSTEM_NOT_FOUND):
                return None
            raise AWSError(
                f"Failed to find access point: failed to list access points "
                f"of file system {options.file_system_id}: {e}"
            ) from e

        for description in descriptions:
            if description.get("ClientToken") == client_token:
                return AccessPoint(
                    access_point_id=description["AccessPointId"],
                    file_system_id=description["FileSystemId"],
                    root_directory=description.get("RootDirectory", {}).get("Path"),
                )
        self.logger.info("Access point does not exist")
        return None

    def _describe_access_points(self, **kwargs) -> List[AccessPointDescriptionTypeDef]:
        response = self.efs_client.describe_access_points(**kwargs)
        access_points = list(response.get("AccessPoints", []))
        while response.get("NextToken"):
            response = self.efs_client.describe_access_points(
                **kwargs, NextToken=response["NextToken"]
            )
            access_points.extend(response.get("AccessPoints", []))
        return access_points
