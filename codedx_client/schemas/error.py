from pydantic import BaseModel, StrictStr


class ErrorMessageResponse(BaseModel):
    """
    Usual shape of an error body for expected failures.

    For 4xx responses the server typically answers with { "error": "some message" }.
    """
    error: StrictStr
