"""Exception hierarchy for autodeploy."""


class AutoDeployError(Exception):
    """Base exception for all autodeploy errors."""


class PlanValidationError(AutoDeployError):
    """Planned runtime is incompatible with the detected apps or the request."""

    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__(f"Plan validation failed: {', '.join(self.violations)}")


class AcquisitionError(AutoDeployError):
    """Repository could not be cloned or copied."""


class GenerationError(AutoDeployError):
    """Failed to generate the Terraform configuration."""


class BuildError(AutoDeployError):
    """Build backend reported a failure."""


class InfrastructureError(AutoDeployError):
    """Terraform failed and no bounded recovery applied or the retry failed."""

    def __init__(self, message: str, result=None):
        self.result = result
        super().__init__(message)
