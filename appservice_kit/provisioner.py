"""
provisioner
-----------

리소스 그룹과 웹앱을 생성한다.

첫 번째 웹앱 생성 시 App Service 플랜이 함께 만들어지고, 반환된 SiteHandle.plan_id 를
이후 웹앱 생성에 그대로 넘겨 같은 플랜을 공유한다. (플랜은 한 번만 생성)
"""

from __future__ import annotations

from typing import Iterable, Optional

from .azure_provider import Provider
from .errors import ProvisionError
from .logging_utils import get_logger
from .models import ResourceGroupHandle, SiteHandle, SiteSpec
from .naming import find_duplicates


logger = get_logger(__name__)


def create_resource_group(provider: Provider, name: str, region: str) -> ResourceGroupHandle:
    logger.info("리소스 그룹 생성: %s (region=%s)", name, region)
    try:
        group = provider.create_resource_group(name, region)
    except ProvisionError:
        raise
    except Exception as e:  # noqa: BLE001
        raise ProvisionError(f"리소스 그룹 생성 실패: {name} ({e})", resource=name) from e
    logger.info("리소스 그룹 생성 완료: %s", group.name)
    return group


def ensure_unique_names(specs: Iterable[SiteSpec]) -> None:
    dups = find_duplicates(s.name for s in specs)
    if dups:
        raise ProvisionError("웹앱 이름이 중복되었습니다: " + ", ".join(dups))


def create_site(
    provider: Provider,
    group: ResourceGroupHandle,
    spec: SiteSpec,
    plan_ref: Optional[str] = None,
) -> SiteHandle:
    """
    웹앱 하나를 생성하고 완료될 때까지 기다린다.
    plan_ref 가 None 이면 provider 가 새 플랜을 만든다.
    생성 전에 *.azurewebsites.net 이름이 비어 있는지 확인한다.
    """
    if not provider.check_name_availability(spec.name):
        raise ProvisionError(
            f"웹앱 이름을 사용할 수 없습니다 (이미 사용 중): {spec.name}",
            resource=spec.name,
        )

    if plan_ref is None:
        logger.info("웹앱 생성 (새 App Service 플랜): %s in %s", spec.name, group.name)
    else:
        logger.info("웹앱 생성 (기존 플랜 공유): %s in %s", spec.name, group.name)

    try:
        site = provider.create_site(group, spec, plan_ref)
    except ProvisionError:
        raise
    except Exception as e:  # noqa: BLE001
        raise ProvisionError(f"웹앱 생성 실패: {spec.name} ({e})", resource=spec.name) from e

    if plan_ref is not None and site.plan_id.lower() != plan_ref.lower():
        raise ProvisionError(
            f"웹앱이 요청한 플랜과 다른 플랜에 생성되었습니다: {site.plan_id} != {plan_ref}",
            resource=spec.name,
        )

    logger.info(
        "웹앱 생성 완료: name=%s host=%s plan=%s state=%s",
        site.name,
        site.default_host_name,
        site.plan_id,
        site.state,
    )
    return site
