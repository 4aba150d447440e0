"""Resource client error module."""

import http


class Error(Exception):
    """
    Base class for resource client errors.

    Errors raised for an HTTP response include the following attributes:
    • status: HTTP status code (int)
    • phrase: HTTP reason phrase
    """


class ClientError(Error):
    """
    Base class for errors in responses with a 4xx status.
    """

    status = 400
    phrase = "Client Error"


class ServerError(Error):
    """
    Base class for errors in responses with a 5xx status.
    """

    status = 500
    phrase = "Server Error"


class TransportError(Error):
    """
    Raised if a request could not be performed or no response was received.

    The underlying exception (e.g. a connection or timeout error) is chained as the cause.
    """


class _Errors:
    """
    Encapsulates response error exception classes. Errors are generated from the error
    statuses in the http.HTTPStatus enum.

    Errors can be accessed by HTTP status or name.
    Example: restbase.error.errors[404] == restbase.error.errors.NotFoundError
    """

    def __init__(self):
        self._names = {}
        self._codes = {}
        for status in (s for s in http.HTTPStatus if 400 <= s.value <= 599):
            name = "".join(
                w.title() if w not in {"HTTP", "URI"} else w for w in status.name.split("_")
            )
            if not name.endswith("Error"):
                name += "Error"
            error = type(
                name,
                (ClientError if status.value < 500 else ServerError,),
                {
                    "status": status.value,
                    "phrase": status.phrase,
                    "__doc__": f"{status.description or status.phrase.capitalize()}.",
                },
            )
            self._names[name] = error
            self._codes[status.value] = error

    def get(self, code: int, default=None) -> type[Error]:
        """Return error for code."""
        return self._codes.get(code, default)

    def for_status(self, code: int) -> type[Error]:
        """Return error for code, falling back to the client or server error base class."""
        return self._codes.get(code) or (ClientError if code < 500 else ServerError)

    def __getitem__(self, code: int) -> type[Error]:
        return self._codes[code]

    def __getattr__(self, name: str) -> type[Error]:
        if error := self._names.get(name):
            return error
        raise AttributeError(name)


errors = _Errors()


# commonly used errors
BadRequestError: type[ClientError] = errors.BadRequestError
ConflictError: type[ClientError] = errors.ConflictError
ForbiddenError: type[ClientError] = errors.ForbiddenError
InsufficientStorageError: type[ServerError] = errors.InsufficientStorageError
InternalServerError: type[ServerError] = errors.InternalServerError
NotFoundError: type[ClientError] = errors.NotFoundError
UnauthorizedError: type[ClientError] = errors.UnauthorizedError
