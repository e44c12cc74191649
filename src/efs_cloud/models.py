from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class FileSystem:
    file_system_id: str


@dataclass
class PosixUser:
    uid: int
    gid: int


@dataclass
class AccessPoint:
    access_point_id: str
    file_system_id: str
    root_directory: Optional[str] = None
    posix_user: Optional[PosixUser] = None
    # EFS does not consider capacity when provisioning access points.
    # Only tracked so callers can echo back the requested size.
    capacity_gib: int = 0


@dataclass
class AccessPointOptions:
    file_system_id: str
    uid: int
    gid: int
    directory_perms: str
    directory_path: str
    tags: Dict[str, str] = field(default_factory=dict)
    capacity_gib: int = 0


@dataclass
class MountTarget:
    az_name: str
    az_id: str
    mount_target_id: str
    ip_address: str


@dataclass(frozen=True)
class CloudMetadata:
    region: str
    availability_zone: Optional[str] = None
    instance_id: Optional[str] = None
