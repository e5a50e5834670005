"""Credential exceptions raised by the token verifier.

Route handlers map them onto HTTP statuses: MissingTokenError -> 400,
InvalidTokenError -> 401.
"""


class MissingTokenError(Exception):
    """Raised when no external credential was supplied.

    Checked before any network call is made.
    """

    pass


class InvalidTokenError(Exception):
    """Raised for every verification failure.

    Network errors, provider rejections and malformed responses all collapse
    into this one type. The cause is chained (``raise ... from``) and logged
    by the verifier, but callers only ever see "invalid token".
    """

    pass
