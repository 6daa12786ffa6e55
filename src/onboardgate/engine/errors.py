"""OnboardGate engine errors."""


_NO_STEP = object()


class OnboardGateError(Exception):
    """Base error for OnboardGate operations."""

    def __init__(self, message: str, code: str = "ONBOARDGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidStepError(OnboardGateError):
    """Step order is not defined for the role."""

    def __init__(self, role: str, step: object = _NO_STEP):
        if step is _NO_STEP:
            message = f"Role {role!r} has no onboarding flow"
        else:
            message = f"Step {step!r} is not defined for role {role!r}"
        super().__init__(message, "INVALID_STEP")
        self.role = role
        self.step = None if step is _NO_STEP else step


class UnknownStep(InvalidStepError):
    """Raised by the step registry for lookups outside a role's sequence."""


class InvalidPayloadError(OnboardGateError):
    """Payload is missing, empty, or not a structured document."""

    def __init__(self, message: str = "Step payload must be a non-empty document"):
        super().__init__(message, "INVALID_PAYLOAD")


class ConflictError(OnboardGateError):
    """Concurrent writes kept invalidating the record version."""

    def __init__(self, user_id: str, attempts: int):
        super().__init__(
            f"Progress for user {user_id} changed concurrently "
            f"({attempts} attempts), retry the request",
            "CONFLICT",
        )
        self.user_id = user_id
        self.attempts = attempts


class StorageUnavailableError(OnboardGateError):
    """Progress storage could not be reached."""

    def __init__(self, message: str = "Progress storage unavailable"):
        super().__init__(message, "STORAGE_UNAVAILABLE")


class StepRegistryError(OnboardGateError):
    """Step definitions are malformed."""

    def __init__(self, message: str):
        super().__init__(message, "STEP_REGISTRY_INVALID")
