class DashboardError(Exception):
    """Base class for failures surfaced to the user by the dashboard module."""


class ValidationError(DashboardError):
    pass


class AuthRequiredError(DashboardError):
    def __init__(self, message: str = "No authenticated user. Sign in and try again."):
        super().__init__(message)


class InvalidTransitionError(DashboardError):
    pass


class PersistenceError(DashboardError):
    """A store write failed; ``step`` names which one."""

    def __init__(self, step: str, message: str, compensated: bool | None = None):
        self.step = step
        self.message = message
        self.compensated = compensated
        super().__init__(f"[{step}] {message}")

    def to_dict(self) -> dict:
        data = {"step": self.step, "message": self.message}
        if self.compensated is not None:
            data["compensated"] = self.compensated
        return data


class NotFoundError(DashboardError):
    pass
