class AWSError(Exception):
    pass


class ResourceNotFoundError(AWSError):
    pass


class ResourceAlreadyExistsError(AWSError):
    # Not raised by any EFSCloud operation yet. Reserved for creation conflicts.
    pass


class AccessDeniedError(AWSError):
    pass
