"""
azure_auth
----------

서비스 주체(CLIENT_ID / CLIENT_SECRET / TENANT_ID)로 자격 증명을 만들고,
선택된 구독을 확인하는 유틸.
"""

from __future__ import annotations

from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential
from azure.mgmt.resource import SubscriptionClient

from .config import SampleConfig
from .errors import ConfigurationError
from .logging_utils import get_logger


logger = get_logger(__name__)


def build_credential(cfg: SampleConfig) -> ClientSecretCredential:
    """tenant id 형식 오류 등 ClientSecretCredential 의 ValueError 는 ConfigurationError 로 바꾼다."""
    try:
        return ClientSecretCredential(
            tenant_id=cfg.tenant_id,
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
        )
    except ValueError as e:
        raise ConfigurationError(f"서비스 주체 자격 증명을 만들 수 없습니다: {e}") from e


def describe_subscription(cfg: SampleConfig, credential: ClientSecretCredential | None = None) -> str:
    """
    구독 정보를 조회하여 "이름 (id)" 문자열을 반환한다.
    인증 실패/구독 없음은 ConfigurationError 로 본다.
    """
    cred = credential or build_credential(cfg)
    client = SubscriptionClient(cred)
    try:
        sub = client.subscriptions.get(cfg.subscription_id)
    except AzureError as e:
        raise ConfigurationError(
            f"구독을 조회할 수 없습니다 ({cfg.subscription_id}): {e}"
        ) from e

    text = f"{sub.display_name} ({sub.subscription_id})"
    logger.info("선택된 구독: %s", text)
    return text
