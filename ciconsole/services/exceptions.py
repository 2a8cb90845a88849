"""Exceptions raised by the console's collaborators."""


class Unavailable(RuntimeError):
    """A storage or upstream service could not be reached."""


class IdentityProviderError(RuntimeError):
    """GitHub rejected a request or returned something unusable."""


class InstallationNotEnabled(RuntimeError):
    """The installation is not enabled by this user."""


class EmailUnavailable(IdentityProviderError):
    """The GitHub account has no primary, verified e-mail address."""
