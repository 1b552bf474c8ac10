"""
azure_provider
--------------

리소스 그룹 / App Service 플랜 / 웹앱 / 소스 제어 연결을 Azure 관리 API 로 수행한다.

오케스트레이터는 Provider 프로토콜에만 의존하며, 테스트에서는 호출을 기록하는
가짜 구현으로 대체한다. 모든 장기 실행 작업(LRO)은 poller.result() 로 완료까지 기다린다.
"""

from __future__ import annotations

from typing import Optional, Protocol

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.web import WebSiteManagementClient
from azure.mgmt.web.models import (
    AppServicePlan,
    CsmPublishingProfileOptions,
    NameValuePair,
    Site,
    SiteConfig,
    SiteConfigResource,
    SiteSourceControl,
    SkuDescription,
    SourceControl,
)

from .errors import DeployError, DeployErrorKind, ProvisionError, TeardownError
from .logging_utils import get_logger
from .models import (
    ExternalRepository,
    ResourceGroupHandle,
    SiteHandle,
    SiteSpec,
    SourceControlState,
)


logger = get_logger(__name__)


_SKU_TIERS = {
    "F": "Free",
    "D": "Shared",
    "B": "Basic",
    "S": "Standard",
    "P": "Premium",
}


def sku_tier(sku: str) -> str:
    """S1 -> Standard, P1V2 -> PremiumV2 처럼 SKU 이름에서 tier 를 유추한다."""
    name = sku.upper()
    tier = _SKU_TIERS.get(name[:1], "Standard")
    if tier == "Premium" and name.endswith(("V2", "V3")):
        tier += name[-2:]
    return tier


class Provider(Protocol):
    def create_resource_group(self, name: str, region: str) -> ResourceGroupHandle: ...

    def delete_resource_group(self, group: ResourceGroupHandle) -> None: ...

    def check_name_availability(self, name: str) -> bool: ...

    def create_site(
        self, group: ResourceGroupHandle, spec: SiteSpec, plan_id: Optional[str]
    ) -> SiteHandle: ...

    def get_publishing_profile(self, site: SiteHandle, profile_format: str) -> str: ...

    def enable_local_git(self, site: SiteHandle) -> None: ...

    def register_github_token(self, token: str) -> None: ...

    def bind_source_control(self, site: SiteHandle, repo: ExternalRepository) -> None: ...

    def get_source_control(self, site: SiteHandle) -> Optional[SourceControlState]: ...


class AzureProvider:
    def __init__(self, credential: TokenCredential, subscription_id: str) -> None:
        self._credential = credential
        self._subscription_id = subscription_id
        self._resource_client: Optional[ResourceManagementClient] = None
        self._web_client: Optional[WebSiteManagementClient] = None

    @property
    def resources(self) -> ResourceManagementClient:
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(self._credential, self._subscription_id)
        return self._resource_client

    @property
    def web(self) -> WebSiteManagementClient:
        if self._web_client is None:
            self._web_client = WebSiteManagementClient(self._credential, self._subscription_id)
        return self._web_client

    # -----------------------------
    # resource group
    # -----------------------------

    def create_resource_group(self, name: str, region: str) -> ResourceGroupHandle:
        try:
            rg = self.resources.resource_groups.create_or_update(name, {"location": region})
        except AzureError as e:
            raise ProvisionError(f"리소스 그룹 생성 실패: {name} ({e})", resource=name) from e
        return ResourceGroupHandle(name=rg.name, region=rg.location, id=rg.id)

    def delete_resource_group(self, group: ResourceGroupHandle) -> None:
        try:
            self.resources.resource_groups.begin_delete(group.name).result()
        except AzureError as e:
            raise TeardownError(f"리소스 그룹 삭제 실패: {group.name} ({e})", resource=group.name) from e

    # -----------------------------
    # plan / site
    # -----------------------------

    def check_name_availability(self, name: str) -> bool:
        try:
            result = self.web.check_name_availability(name=name, type="Site")
        except AzureError as e:
            raise ProvisionError(f"웹앱 이름 확인 실패: {name} ({e})", resource=name) from e
        if not result.name_available:
            logger.info("웹앱 이름 사용 불가: %s (%s)", name, result.message or result.reason)
        return bool(result.name_available)

    def _create_plan(self, group: ResourceGroupHandle, spec: SiteSpec) -> str:
        plan_name = f"{spec.name}-plan"
        logger.info("App Service 플랜 생성: %s (sku=%s)", plan_name, spec.plan_sku)
        plan = self.web.app_service_plans.begin_create_or_update(
            group.name,
            plan_name,
            AppServicePlan(
                location=spec.region,
                kind="linux",
                reserved=True,
                sku=SkuDescription(name=spec.plan_sku, tier=sku_tier(spec.plan_sku)),
            ),
        ).result()
        return plan.id

    def create_site(
        self, group: ResourceGroupHandle, spec: SiteSpec, plan_id: Optional[str]
    ) -> SiteHandle:
        try:
            server_farm_id = plan_id or self._create_plan(group, spec)
            envelope = Site(
                location=spec.region,
                server_farm_id=server_farm_id,
                reserved=True,
                site_config=SiteConfig(
                    app_settings=[
                        NameValuePair(name=k, value=v) for k, v in spec.app_settings.items()
                    ],
                    app_command_line=spec.startup_command,
                    linux_fx_version=spec.linux_fx_version,
                ),
            )
            site = self.web.web_apps.begin_create_or_update(group.name, spec.name, envelope).result()
        except AzureError as e:
            raise ProvisionError(f"웹앱 생성 실패: {spec.name} ({e})", resource=spec.name) from e

        return SiteHandle(
            name=site.name,
            resource_group=group.name,
            region=site.location or spec.region,
            plan_id=site.server_farm_id or server_farm_id,
            default_host_name=site.default_host_name or f"{spec.name}.azurewebsites.net",
            state=site.state,
        )

    # -----------------------------
    # deployment
    # -----------------------------

    def get_publishing_profile(self, site: SiteHandle, profile_format: str) -> str:
        try:
            stream = self.web.web_apps.list_publishing_profile_xml_with_secrets(
                site.resource_group,
                site.name,
                CsmPublishingProfileOptions(format=profile_format),
            )
            data = b"".join(chunk for chunk in stream)
        except AzureError as e:
            raise DeployError(
                DeployErrorKind.TRANSPORT,
                f"publishing profile 조회 실패 ({e})",
                site=site.name,
            ) from e
        return data.decode("utf-8")

    def enable_local_git(self, site: SiteHandle) -> None:
        try:
            self.web.web_apps.update_configuration(
                site.resource_group, site.name, SiteConfigResource(scm_type="LocalGit")
            )
        except AzureError as e:
            raise DeployError(
                DeployErrorKind.TRANSPORT, f"Local Git 활성화 실패 ({e})", site=site.name
            ) from e

    def register_github_token(self, token: str) -> None:
        try:
            self.web.update_source_control("GitHub", SourceControl(token=token))
        except AzureError as e:
            raise DeployError(DeployErrorKind.TRANSPORT, f"GitHub 토큰 등록 실패 ({e})") from e

    def bind_source_control(self, site: SiteHandle, repo: ExternalRepository) -> None:
        try:
            self.web.web_apps.begin_create_or_update_source_control(
                site.resource_group,
                site.name,
                SiteSourceControl(
                    repo_url=repo.url,
                    branch=repo.branch,
                    is_manual_integration=not repo.continuous_integration,
                    is_mercurial=False,
                ),
            ).result()
        except AzureError as e:
            raise DeployError(
                DeployErrorKind.TRANSPORT,
                f"소스 제어 연결 실패: {repo.url}@{repo.branch} ({e})",
                site=site.name,
            ) from e

    def get_source_control(self, site: SiteHandle) -> Optional[SourceControlState]:
        try:
            sc = self.web.web_apps.get_source_control(site.resource_group, site.name)
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            raise DeployError(
                DeployErrorKind.TRANSPORT, f"소스 제어 조회 실패 ({e})", site=site.name
            ) from e
        return SourceControlState(
            repo_url=sc.repo_url,
            branch=sc.branch,
            continuous_integration=not bool(sc.is_manual_integration),
        )
