"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Pre-configured HTTPException subclasses the service layer raises after
translating query layer errors, so routers never pick status codes.

Usage:
    from typedquery.utils.exceptions import NotFoundError
    raise NotFoundError("Member not found")
"""

from fastapi import HTTPException, status


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 필터/정렬/페이지 값.

    400 Bad Request exception.
    Raised when request parameters produce an invalid query
    (unknown sort key, type mismatch, negative offset).

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 리소스를 찾을 수 없을 때 사용.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ServerError(HTTPException):
    """500 Internal Server Error 예외 — 저장소 실행 실패.

    Raised when the store rejects a query; the detail carries the store's
    diagnostic.

    Args:
        detail: 오류 메시지 (Error message, default: "Query execution failed")
    """

    def __init__(self, detail: str = "Query execution failed") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
