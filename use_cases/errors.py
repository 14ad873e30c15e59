"""Error taxonomy shared by the identity provider, repositories and use cases."""


class PCIError(Exception):
    """Base class for every failure surfaced to the presentation layer."""


class AuthenticationFailure(PCIError):
    pass


class InvalidCredentialsError(AuthenticationFailure):
    pass


class AuthorizationFailure(PCIError):
    pass


class ValidationFailure(PCIError):
    pass


class UserAlreadyExistsError(ValidationFailure):
    pass


class NotFound(PCIError):
    pass


class InvalidStateTransition(PCIError):
    pass


class PersistenceError(PCIError):
    pass
