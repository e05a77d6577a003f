"""Exceptions related to fnops."""

__all__ = [
    "FnOpsException",
    "InputException",
    "NotFoundError",
    "ResourceNotFoundError",
    "OwnerReferenceNotFoundError",
    "CommandException",
    "InstallException",
    "is_not_found",
]


class FnOpsException(Exception):
    """Generic base exception used for this library."""


class InputException(FnOpsException):
    """Raised when the input files or values are not formatted as expected."""


class NotFoundError(FnOpsException):
    """Base class for errors that report a missing object."""


class ResourceNotFoundError(NotFoundError):
    """Raised when the resource store does not have the requested object."""

    def __init__(self, kind: str, name: str, message: str | None = None) -> None:
        super().__init__(message or f"{kind} {name} not found")
        self.kind = kind
        self.name = name


class OwnerReferenceNotFoundError(NotFoundError):
    """Raised when an apply requires an owner reference that was not supplied."""

    def __init__(self, owner_kind: str, owner_label: str) -> None:
        super().__init__(f"{owner_label}: no owner reference of kind {owner_kind}")
        self.owner_kind = owner_kind
        self.owner_label = owner_label


class CommandException(FnOpsException):
    """Raised when there is a failure running a subcommand."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class ContainerException(CommandException):
    """Raised when there is a failure running a docker command."""


class InstallException(FnOpsException):
    """Raised when a component could not be installed."""

    def __init__(self, component: str, message: str) -> None:
        super().__init__(f"Component {component} installation failed: {message}")
        self.component = component


def is_not_found(err: BaseException | None) -> bool:
    """Return True if the error reports a missing object."""
    return isinstance(err, NotFoundError)
