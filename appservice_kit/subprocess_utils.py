from __future__ import annotations

import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence

from .logging_utils import get_logger, redact


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def display_command(cmd: Sequence[str]) -> str:
    """로그/에러 메시지용 커맨드 문자열. 등록된 secret 은 가려진다."""
    return redact(" ".join(cmd))


def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 900.0,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stdout/stderr 를 캡처하여 실패 시 일부를 에러 메시지에 포함
    - 명령/출력에 포함된 secret 은 로그와 예외 메시지에서 가려진다
    - 실패/타임아웃/미설치는 RuntimeError 로 래핑
    """
    shown = display_command(cmd)
    logger.info("명령 실행: %s", shown)
    try:
        result = subprocess.run(
            list(cmd),
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
        if result.stdout:
            logger.debug("명령 stdout: %s", shorten(redact(result.stdout.strip()), width=2000))
        if result.stderr:
            logger.debug("명령 stderr: %s", shorten(redact(result.stderr.strip()), width=2000))
        return RunResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
    except FileNotFoundError as e:
        raise RuntimeError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} ({cmd[0]} 가 설치되어 있는지 확인하세요)"
        ) from e
    except subprocess.TimeoutExpired:
        raise RuntimeError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {shown}"
        ) from None
    except subprocess.CalledProcessError as e:
        stdout = redact((e.stdout or "").strip())
        stderr = redact((e.stderr or "").strip())
        detail = ""
        if stderr:
            detail = "\nstderr:\n" + shorten(stderr, width=2000)
        elif stdout:
            detail = "\nstdout:\n" + shorten(stdout, width=2000)
        # CalledProcessError.cmd 에 secret 이 남으므로 체인을 끊는다.
        raise RuntimeError(
            f"명령 실행 실패: {shown} (exit={e.returncode}){detail}"
        ) from None
