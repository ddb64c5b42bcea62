from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Bad input or a disallowed state change. Never retried."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str, status_code: int = status.HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class StoreError(HTTPException):
    """A query or write failed. The client only sees the generic message."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )


class PartialFailureError(HTTPException):
    """The primary write committed but a follow-up write failed."""

    def __init__(self, message: str, committed: list[str], failed: list[str]):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": message,
                "committed": committed,
                "failed": failed,
            },
        )
