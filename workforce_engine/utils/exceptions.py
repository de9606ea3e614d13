"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Every rule violation in the attendance and scheduling workflows is raised as
one of these typed errors; routes let them propagate so FastAPI renders the
status code and bilingual detail message.

Usage:
    from workforce_engine.utils.exceptions import ConflictError, NotFoundError
    raise NotFoundError("스케줄을 찾을 수 없습니다 (Schedule not found)")
    raise ConflictError("이미 출근 처리되었습니다 (Already checked in today)")
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """400 Bad Request 예외 — 입력 값이 업무 규칙에 맞지 않을 때 사용.

    400 Bad Request exception.
    Raised for malformed input that pydantic cannot catch on its own
    (e.g. inverted date ranges, self-trades, empty work patterns).

    Args:
        detail: 오류 메시지 (Error message, default: "Invalid request")
    """

    def __init__(self, detail: str = "Invalid request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    """401 Unauthorized 예외 — 호출자 식별 실패 시 사용.

    401 Unauthorized exception.
    Raised when the bearer token or cron secret is missing or invalid.

    Args:
        detail: 오류 메시지 (Error message, default: "Authentication required")
    """

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    """403 Forbidden 예외 — 권한 부족 시 사용.

    403 Forbidden exception.
    Raised when the caller acts on a resource they do not own
    (e.g. trading someone else's shift, answering a trade addressed to another employee).

    Args:
        detail: 오류 메시지 (Error message, default: "Insufficient permissions")
    """

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 리소스를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised when a contract, schedule entry, trade request or today's
    attendance record does not exist.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """409 Conflict 예외 — 현재 상태와 충돌하는 요청 시 사용.

    409 Conflict exception.
    Raised when the request contradicts stored state: double check-in,
    check-out twice, a second open trade for the same shift, or a trade
    transition that lost the race to a concurrent writer.

    Args:
        detail: 오류 메시지 (Error message, default: "Conflicting state")
    """

    def __init__(self, detail: str = "Conflicting state") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
