# Service error codes
# fmt: off
ACCESS_DENIED_EXCEPTION         = "AccessDeniedException"
ACCESS_POINT_NOT_FOUND          = "AccessPointNotFound"
FILE_SYSTEM_NOT_FOUND           = "FileSystemNotFound"
# fmt: on

MOUNT_TARGET_AVAILABLE_STATE = "available"

DESCRIBE_ACCESS_POINTS_MAX_RESULTS = 1000

# Set by callers to track the claim an access point was provisioned for
PVC_NAME_TAG_KEY = "pvcName"
