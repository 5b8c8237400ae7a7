"""Exception taxonomy for the survey response engine.

Every error carries a ``user_message`` that is safe to show to the end user.
Schema and corrupt-data errors keep their technical detail in ``str(exc)`` for
the logs while ``user_message`` stays generic.
"""

GENERIC_ERROR_MESSAGE = "Something went wrong while processing survey responses."
RETRY_ERROR_MESSAGE = "The survey service is busy. Please try again."


class SurveyEngineError(Exception):
    """Base class for survey engine errors."""

    user_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None, *, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(SurveyEngineError):
    """Missing or invalid answer payload. Surfaced to the caller verbatim."""

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class SurveyClosedError(ValidationError):
    """Raised when writing answers to a survey that is not running."""

    def __init__(self, survey_id: int):
        self.survey_id = survey_id
        super().__init__(f"Survey {survey_id} is not accepting answers")


class NotFoundError(SurveyEngineError):
    """Survey, question or employee does not exist."""

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(message, user_message=f"{resource} not found")


class SchemaError(SurveyEngineError):
    """Neither the legacy nor the shortened column set exists. Fatal, never retried."""

    def __init__(self, table_name: str, detail: str):
        self.table_name = table_name
        super().__init__(f"Schema mismatch on {table_name}: {detail}")


class TransientStoreError(SurveyEngineError):
    """Connection or timeout failure that survived the bounded retries."""

    user_message = RETRY_ERROR_MESSAGE


class CorruptDataError(SurveyEngineError):
    """A stored answer array could not be parsed.

    Recovered locally by the loaders; never propagated to API callers.
    """
