"""
errors
------

샘플 실행 중 발생할 수 있는 오류 분류.

- ConfigurationError : 필수 환경변수 누락 등 (프로비저닝 시작 전)
- ProvisionError     : 리소스 그룹 / 플랜 / 웹앱 생성 실패
- DeployError        : 배포 경로별 실패 (TRANSPORT | MALFORMED_CREDENTIALS)
- OperationCancelled : 외부 신호로 실행이 중단됨
- TeardownError      : 정리 실패 (로그만 남기고 호출자에게 전파하지 않음)
- ReadinessTimeout   : 예외가 아닌 경고 레코드
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


EXIT_OK = 0
EXIT_UNEXPECTED = 1


class SampleError(Exception):
    """모든 샘플 오류의 베이스. CLI 는 exit_code 로 종료 코드를 결정한다."""

    exit_code: int = EXIT_UNEXPECTED


class ConfigurationError(SampleError, ValueError):
    exit_code = 2


class ProvisionError(SampleError):
    exit_code = 3

    def __init__(self, message: str, *, resource: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource = resource


class DeployErrorKind(str, enum.Enum):
    TRANSPORT = "transport"
    MALFORMED_CREDENTIALS = "malformed_credentials"


class DeployError(SampleError):
    exit_code = 4

    def __init__(self, kind: DeployErrorKind, message: str, *, site: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.site = site

    def __str__(self) -> str:
        base = super().__str__()
        if self.site:
            return f"[{self.kind.value}] {self.site}: {base}"
        return f"[{self.kind.value}] {base}"


class OperationCancelled(SampleError):
    exit_code = 5


class TeardownError(SampleError):
    """
    리소스 그룹 삭제 실패.
    teardown 내부에서 로그 컨텍스트로만 사용되며 호출자에게 raise 되지 않는다.
    """

    def __init__(self, message: str, *, resource: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource = resource


@dataclass(frozen=True)
class ReadinessTimeout:
    """준비 상태 확인이 제한 시간 안에 성공하지 못했다는 경고."""

    site: str
    url: str
    waited_seconds: float
    attempts: int
    last_status: Optional[int] = None

    def __str__(self) -> str:
        status = self.last_status if self.last_status is not None else "no response"
        return (
            f"{self.site}: {self.url} 가 {self.waited_seconds:0.1f}s "
            f"({self.attempts}회 시도) 안에 응답하지 않았습니다 (last={status})"
        )
