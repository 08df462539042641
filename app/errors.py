"""
Error taxonomy shared by the AI client, the request registry and the document store.
The HTTP layer maps each class to a status code in app.api.errors.
"""


class DealflowError(Exception):
    """Base class for every error surfaced to the caller."""


# --- Generative AI ---

class GenerationError(DealflowError):
    """Any failure while obtaining text from the AI endpoint."""

    retryable = False


class RateLimited(GenerationError):
    """HTTP 429 from the AI endpoint."""

    retryable = True


class TransientFailure(GenerationError):
    """Network error, timeout or server-side failure worth another attempt."""

    retryable = True


class RequestRejected(GenerationError):
    """Non-429 client error (4xx): the payload itself is wrong, retrying will not help."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(GenerationError):
    """The response envelope or the model's JSON did not match the expected shape."""

    retryable = True


class ExhaustedRetries(GenerationError):
    """Every attempt in the retry budget failed."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"AI request failed after {attempts} attempts{detail}")
        self.attempts = attempts
        self.last_error = last_error


class RequestInFlight(DealflowError):
    """The same action is already running for this user."""


class RequestCancelled(DealflowError):
    """An in-flight request was cancelled; its result is discarded."""


# --- Document store ---

class StoreError(DealflowError):
    """Failure in the persistence gateway or the backing document store."""


class NotAuthenticated(StoreError):
    """No resolved user identity for an operation that requires one."""


class NotFound(StoreError):
    """The target document does not exist in the caller's scope."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id
