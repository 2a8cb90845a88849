"""Exceptions raised by the session store and the OAuth state guard."""


class SessionStorageError(RuntimeError):
    """The session storage layer could not be reached or failed to write."""


class InvalidOAuthState(RuntimeError):
    """OAuth callback did not carry the state token issued to the session."""
