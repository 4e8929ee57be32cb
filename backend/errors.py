"""Error taxonomy for statement processing.

Every error carries the HTTP status it maps to and a message that is safe to
show to the user. Provider and parser internals are kept in ``detail`` for
logging only.
"""


class StatementError(Exception):
    """Base class for all statement processing failures."""

    status_code = 500
    default_message = "Failed to process statement"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")


# Input validation (user-correctable)


class EmptyContentError(StatementError):
    status_code = 400
    default_message = "File content is empty or too short to be a valid statement"


class TooLargeError(StatementError):
    status_code = 400
    default_message = "Statement is too large to process"


class NotAStatementError(StatementError):
    status_code = 400
    default_message = (
        "This does not appear to be a bank statement. Please upload a valid bank "
        "statement (PDF, CSV, or TXT) containing transaction details."
    )


class UnsupportedFormatError(StatementError):
    status_code = 400
    default_message = "Invalid file format. Supported formats: PDF, CSV, TXT"


# Provider failures


class NoProviderConfiguredError(StatementError):
    status_code = 500
    default_message = (
        "No AI provider configured. Set GROQ_API_KEY, GEMINI_API_KEY, or OPENAI_API_KEY"
    )


class ProviderError(StatementError):
    """A provider call failed after the gateway exhausted its fallbacks."""

    status_code = 500

    def __init__(self, provider: str, detail: str | None = None, message: str | None = None):
        self.provider = provider
        super().__init__(message, detail=f"[{provider}] {detail}" if detail else f"[{provider}]")


class RateLimitedError(ProviderError):
    status_code = 429
    default_message = "AI provider rate limit reached. Please try again in a minute."


# Model output that could not be turned into transactions


class ResponseParseError(StatementError):
    status_code = 500


class UnparseableResponseError(ResponseParseError):
    pass


class NotAnArrayError(ResponseParseError):
    pass


class EmptyResultError(ResponseParseError):
    pass


# Terminal extraction outcomes


class NoTransactionsExtractedError(StatementError):
    status_code = 400
    default_message = "No transactions could be extracted. Please check the file content and try again."


class NoValidTransactionsError(StatementError):
    status_code = 400
    default_message = "No valid transactions found in the statement. Please check the file content."


class ExtractionTimeoutError(StatementError):
    status_code = 504
    default_message = "Statement processing timed out. Try a smaller statement."
