import logging
import sys
import threading
from typing import Optional


REDACTED = "***"

_secrets_lock = threading.Lock()
_secrets: set[str] = set()


def register_secret(value: Optional[str]) -> None:
    """로그 출력에서 가려야 할 값을 등록한다. (비밀번호, 토큰 등)"""
    if not value:
        return
    with _secrets_lock:
        _secrets.add(value)


def clear_secrets() -> None:
    with _secrets_lock:
        _secrets.clear()


def redact(text: str) -> str:
    with _secrets_lock:
        # 긴 값부터 치환
        values = sorted(_secrets, key=len, reverse=True)
    for value in values:
        text = text.replace(value, REDACTED)
    return text


class SecretRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        if record.exc_info and not record.exc_text:
            formatter = logging.Formatter()
            record.exc_text = redact(formatter.formatException(record.exc_info))
        elif record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )

    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(SecretRedactingFilter())

    # azure SDK 의 HTTP 로그는 -vv 이상에서만 노출
    sdk_level = logging.DEBUG if verbosity >= 2 else logging.WARNING
    for name in ("azure", "urllib3"):
        logging.getLogger(name).setLevel(sdk_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
