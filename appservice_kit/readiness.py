"""
readiness
---------

웹앱 공개 엔드포인트가 응답할 때까지 지수 백오프로 GET 을 반복한다.

App Service 는 배포 직후 콜드 스타트/전파 지연이 흔하므로
제한 시간 안에 성공하지 못해도 예외가 아니라 결과(ready=False)로 돌려준다.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .errors import OperationCancelled
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ProbeOutcome:
    url: str
    ready: bool
    attempts: int
    waited_seconds: float
    last_status: Optional[int] = None


def _is_ready(status: int) -> bool:
    return status < 400


def wait_until_ready(
    url: str,
    *,
    max_wait: float = 60.0,
    initial_interval: float = 2.0,
    max_interval: float = 15.0,
    request_timeout: float = 30.0,
    cancel: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ProbeOutcome:
    """
    url 에 대해 non-error 응답(<400)을 받을 때까지 폴링한다.

    - 첫 시도는 즉시, 이후 initial_interval 부터 두 배씩(최대 max_interval) 대기
    - 총 대기 시간은 max_wait 를 넘지 않는다
    - cancel 이 set 되면 OperationCancelled
    - session 을 넘기지 않으면 내부에서 만든 Session 을 끝날 때 닫는다
    """
    owned = session is None
    http = requests.Session() if owned else session
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    try:
        return _poll(
            http,
            url,
            max_wait=max_wait,
            initial_interval=initial_interval,
            max_interval=max_interval,
            request_timeout=request_timeout,
            cancel=cancel,
            sleep=sleep,
            clock=clock,
        )
    finally:
        if owned:
            http.close()


def _poll(
    http: requests.Session,
    url: str,
    *,
    max_wait: float,
    initial_interval: float,
    max_interval: float,
    request_timeout: float,
    cancel: Optional[threading.Event],
    sleep: Callable[[float], None],
    clock: Callable[[], float],
) -> ProbeOutcome:
    started = clock()
    interval = max(initial_interval, 0.01)
    attempts = 0
    last_status: Optional[int] = None

    while True:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"준비 상태 확인이 취소되었습니다: {url}")

        attempts += 1
        try:
            resp = http.get(url, timeout=request_timeout, allow_redirects=True)
            last_status = resp.status_code
            if _is_ready(resp.status_code):
                waited = clock() - started
                logger.info("응답 확인: %s (status=%s, %d회, %.1fs)", url, resp.status_code, attempts, waited)
                return ProbeOutcome(url, True, attempts, waited, last_status)
            logger.debug("아직 준비되지 않음: %s (status=%s)", url, resp.status_code)
        except requests.RequestException as e:
            logger.debug("요청 실패: %s (%s)", url, e)

        remaining = max_wait - (clock() - started)
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        interval = min(interval * 2, max_interval)

    waited = clock() - started
    return ProbeOutcome(url, False, attempts, waited, last_status)
