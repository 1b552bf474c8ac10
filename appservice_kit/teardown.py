"""
teardown
--------

실행 결과와 상관없이 리소스 그룹을 한 번 삭제 시도한다.
삭제 실패는 로그만 남기고 호출자에게 전파하지 않는다.
"""

from __future__ import annotations

import enum
from typing import Optional

from .azure_provider import Provider
from .logging_utils import get_logger
from .models import ResourceGroupHandle


logger = get_logger(__name__)


class TeardownOutcome(str, enum.Enum):
    NOTHING_TO_CLEAN = "nothing_to_clean"
    DELETED = "deleted"
    FAILED = "failed"


def teardown(provider: Provider, group: Optional[ResourceGroupHandle]) -> TeardownOutcome:
    if group is None:
        logger.info("Azure 에 생성된 리소스가 없습니다. 정리할 것이 없습니다.")
        return TeardownOutcome.NOTHING_TO_CLEAN

    logger.info("리소스 그룹 삭제: %s", group.name)
    try:
        provider.delete_resource_group(group)
    except Exception as e:  # noqa: BLE001
        logger.error("리소스 그룹 삭제 실패 (수동 정리 필요): %s (%s)", group.name, e)
        return TeardownOutcome.FAILED

    logger.info("리소스 그룹 삭제 완료: %s", group.name)
    return TeardownOutcome.DELETED
