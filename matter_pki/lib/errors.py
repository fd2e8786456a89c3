"""Exception taxonomy for hierarchy provisioning."""


class ProvisioningError(Exception):
    """Base class for every failure raised while provisioning the hierarchy."""


class ValidationError(ProvisioningError):
    """Deployment input violates a format or consistency contract.

    Always fatal for the run that produced it; values are never corrected.
    """

    def __init__(self, field_name: str, value: object, reason: str) -> None:
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"invalid {field_name} {value!r}: {reason}")


class CompositionError(ProvisioningError):
    """Subject attribute set built outside the four allowed variants."""


class SigningWorkflowError(ProvisioningError):
    """A signing, retrieval or activation step failed for one authority.

    The authority keeps the last lifecycle state it completed.
    """

    def __init__(self, authority: str, step: str, reason: str) -> None:
        self.authority = authority
        self.step = step
        self.reason = reason
        super().__init__(f"{step} failed for {authority}: {reason}")


class DeletionSafetyViolation(ProvisioningError):
    """Attempt to delete or replace a certificate authority."""

    def __init__(self, authority: str, operation: str) -> None:
        self.authority = authority
        self.operation = operation
        super().__init__(
            f"{operation} of certificate authority {authority} is not permitted: "
            "its private key cannot be regenerated"
        )
