"""
UserHub exceptions.

Protocol-level errors abort the call that raised them. Content-level
failures (a failed write, an unparsable generation, a lookup miss) are
never raised past a capability handler; they travel as payload text.
"""

from __future__ import annotations


class UserHubError(Exception):
    """Base class for every UserHub error."""


# -- protocol level ---------------------------------------------------------


class NotFoundError(UserHubError):
    """Raised when a capability or resource URI is not registered."""


class DuplicateNameError(UserHubError):
    """Raised when a capability name is registered twice for one kind."""


class ArgumentMissingError(UserHubError):
    """Raised when a required argument is absent from an invocation."""


class ArgumentTypeError(UserHubError):
    """Raised when an argument cannot be coerced to its declared type."""


class UriTemplateError(UserHubError):
    """Raised when a URI template placeholder is left unfilled."""


class DiscoveryError(UserHubError):
    """Raised when capability discovery fails at client startup."""


class InvocationError(UserHubError):
    """Raised client-side when the host reports a failed invocation."""


class ToolExecutionError(UserHubError):
    """Raised server-side to report a failed tool or prompt handler."""


# -- record store -----------------------------------------------------------


class StoreError(UserHubError):
    """Base class for record store failures."""


class StoreReadError(StoreError):
    """Raised when the record file exists but cannot be read or parsed."""


class StoreWriteError(StoreError):
    """Raised when the record file cannot be durably replaced."""


# -- reverse channel --------------------------------------------------------


class SamplingError(UserHubError):
    """Raised when a reverse sampling request fails."""


class SamplingTimeoutError(SamplingError):
    """Raised when a reverse sampling request exceeds its deadline."""
