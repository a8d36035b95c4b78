class TracerError(Exception):
    pass


class ConfigMissingError(TracerError):
    pass


class UpstreamError(TracerError):
    pass


class RateLimitError(UpstreamError):
    pass


class UnauthorizedError(TracerError):
    pass


class NotFoundError(TracerError):
    pass


class ValidationError(TracerError):
    pass
