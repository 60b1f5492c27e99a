from ...errors import OpenError


class DongleNotFoundError(OpenError):
    """Raised when no matching dongle could be found."""
    stage = "find"


class MultipleDonglesError(OpenError):
    """Raised when more than one matching dongle is found."""
    stage = "find"

    def __init__(self, message, devices):
        super().__init__(message)
        self.devices = devices  # list[DongleInfo] but avoid circular imports
