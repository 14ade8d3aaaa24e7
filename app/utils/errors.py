class FindServiceError(Exception):
    """Base class for every failure the finds catalog can report."""


class AssetUploadFailed(FindServiceError):
    pass


class AssetDeleteFailed(FindServiceError):
    # only ever logged by the service, never surfaced to callers
    pass


class RecordWriteFailed(FindServiceError):
    pass


class FindNotFound(RecordWriteFailed):
    def __init__(self, find_id: str):
        super().__init__(f"Find {find_id} not found")
        self.find_id = find_id


class RecordDeleteFailed(FindServiceError):
    pass


class StoreUnavailable(FindServiceError):
    pass


class ValidationFailed(FindServiceError):
    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []
