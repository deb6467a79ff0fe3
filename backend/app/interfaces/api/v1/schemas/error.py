from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body rendered for every application error."""

    detail: str
    kind: str
