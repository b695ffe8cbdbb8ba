from fastapi import HTTPException


class NotFoundError(LookupError):
    pass


class ConflictError(ValueError):
    pass


class InvalidStateError(ValueError):
    pass


class AllocationError(ValueError):
    """Dispatch allocation rejected as a whole; `messages` lists every failing item."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("Validation errors:\n" + "\n".join(self.messages))


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc.args[0]) if exc.args else "Not found")
    if isinstance(exc, (ConflictError, InvalidStateError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, AllocationError):
        return HTTPException(
            status_code=400,
            detail=[{"field": "items", "message": message, "type": "allocation"} for message in exc.messages],
        )
    return HTTPException(status_code=400, detail=str(exc))
