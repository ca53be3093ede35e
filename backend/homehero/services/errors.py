class ServiceStoreError(ValueError):
    """Base class for user-visible catalog errors."""


class ServiceStoreValidationError(ServiceStoreError):
    pass


class ServiceStoreNotFoundError(ServiceStoreError):
    pass


class ServiceStoreConflictError(ServiceStoreError):
    pass


class ServiceStorePermissionError(ServiceStoreError):
    pass


class ServiceStoreUnavailableError(ServiceStoreError):
    """The backing store could not complete the operation; safe to retry."""


class SlugTakenError(ServiceStoreConflictError):
    """The slug unique index rejected a write."""


class SlugAllocationExhaustedError(ServiceStoreError):
    pass
