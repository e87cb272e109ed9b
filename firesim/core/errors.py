"""Domain-specific errors for firesim."""


class FiresimError(Exception):
    """Base error for firesim."""


class ConfigLoadError(FiresimError):
    """Raised when a configuration document cannot be read."""


class ConfigValidationError(FiresimError):
    """Raised when a configuration document does not conform to schema."""


class PlanLoadError(FiresimError):
    """Raised when a floor-plan snapshot cannot be read."""


class PlanValidationError(FiresimError):
    """Raised when a floor-plan snapshot does not conform to schema."""


class LoopSelectionError(FiresimError):
    """Raised when a requested loop driver does not exist in the plan."""
