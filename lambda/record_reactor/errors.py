class ReactorError(Exception):
    pass


class InvalidInputError(ReactorError, ValueError):
    pass


class HostnameError(InvalidInputError):
    pass


class RecordValueError(InvalidInputError):
    pass


class NotFoundError(ReactorError, LookupError):
    pass


class ScalingGroupNotFoundError(NotFoundError):
    pass


class InstanceNotFoundError(NotFoundError):
    pass


class ZoneNotFoundError(NotFoundError):
    pass
