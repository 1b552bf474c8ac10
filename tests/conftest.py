"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 appservice_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

Azure 호출은 모두 호출 기록용 FakeProvider 로 대체한다.
"""

from __future__ import annotations

import os
import sys
from typing import Dict, List, Optional, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


def publish_profile_xml(site: str, password: str = "s3cr3t-pwd") -> str:
    return (
        "<publishData>"
        f'<publishProfile profileName="{site} - Web Deploy" publishMethod="MSDeploy" '
        f'publishUrl="{site}.scm.azurewebsites.net:443" msdeploySite="{site}" '
        f'userName="${site}" userPWD="{password}" destinationAppUrl="http://{site}.azurewebsites.net" />'
        f'<publishProfile profileName="{site} - FTP" publishMethod="FTP" '
        f'publishUrl="ftps://waws-prod-blu-001.ftp.azurewebsites.windows.net/site/wwwroot" '
        f'ftpPassiveMode="True" userName="{site}\\${site}" userPWD="{password}" />'
        "</publishData>"
    )


class FakeProvider:
    """
    Provider 프로토콜의 가짜 구현. 모든 호출을 self.calls 에 (메서드, 대상) 으로 기록한다.

    fail[(method, name)] 또는 fail[(method, None)] 에 예외를 넣으면 해당 호출에서 raise 한다.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.fail: Dict[Tuple[str, Optional[str]], BaseException] = {}
        self.site_plan_refs: Dict[str, Optional[str]] = {}
        self.plans_created: List[str] = []
        self.deleted: List[str] = []
        self.ci_confirmed = True
        self.bound: Dict[str, object] = {}
        self.taken_names: set = set()

    def _call(self, method: str, name: Optional[str]) -> None:
        self.calls.append((method, name))
        exc = self.fail.get((method, name)) or self.fail.get((method, None))
        if exc is not None:
            raise exc

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def create_resource_group(self, name, region):
        from appservice_kit.models import ResourceGroupHandle

        self._call("create_resource_group", name)
        return ResourceGroupHandle(name=name, region=region, id=f"/subscriptions/sub/resourceGroups/{name}")

    def delete_resource_group(self, group):
        self._call("delete_resource_group", group.name)
        self.deleted.append(group.name)

    def check_name_availability(self, name):
        self._call("check_name_availability", name)
        return name not in self.taken_names

    def create_site(self, group, spec, plan_id):
        from appservice_kit.models import SiteHandle

        self._call("create_site", spec.name)
        self.site_plan_refs[spec.name] = plan_id
        if plan_id is None:
            plan_id = f"/subscriptions/sub/resourceGroups/{group.name}/providers/Microsoft.Web/serverfarms/{spec.name}-plan"
            self.plans_created.append(plan_id)
        return SiteHandle(
            name=spec.name,
            resource_group=group.name,
            region=spec.region,
            plan_id=plan_id,
            default_host_name=f"{spec.name}.azurewebsites.net",
            state="Running",
        )

    def get_publishing_profile(self, site, profile_format):
        self._call("get_publishing_profile", site.name)
        return publish_profile_xml(site.name, password=f"pwd-{site.name}")

    def enable_local_git(self, site):
        self._call("enable_local_git", site.name)

    def register_github_token(self, token):
        self._call("register_github_token", None)

    def bind_source_control(self, site, repo):
        self._call("bind_source_control", site.name)
        self.bound[site.name] = repo

    def get_source_control(self, site):
        from appservice_kit.models import SourceControlState

        self._call("get_source_control", site.name)
        repo = self.bound.get(site.name)
        if repo is None:
            return None
        return SourceControlState(
            repo_url=repo.url,
            branch=repo.branch,
            continuous_integration=self.ci_confirmed and repo.continuous_integration,
        )


class RecordingTransports:
    def __init__(self) -> None:
        self.uploads: List[Tuple[str, str]] = []
        self.pushes: List[Tuple[str, str]] = []
        self.credentials: List[object] = []

    def upload(self, creds, artifact_path, *, remote_subdir=None, site=None):
        self.uploads.append((site, artifact_path))
        self.credentials.append(creds)
        return f"/site/wwwroot/{remote_subdir}/{os.path.basename(artifact_path)}"

    def push(self, creds, site_name, source_dir, *, branch="master"):
        self.pushes.append((site_name, source_dir))
        self.credentials.append(creds)


@pytest.fixture(autouse=True)
def _clear_registered_secrets():
    from appservice_kit.logging_utils import clear_secrets

    clear_secrets()
    yield
    clear_secrets()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def transports() -> RecordingTransports:
    return RecordingTransports()


@pytest.fixture
def sample_env() -> Dict[str, str]:
    return {
        "CLIENT_ID": "00000000-0000-0000-0000-000000000001",
        "CLIENT_SECRET": "client-secret-value",
        "TENANT_ID": "00000000-0000-0000-0000-000000000002",
        "SUBSCRIPTION_ID": "00000000-0000-0000-0000-000000000003",
    }


@pytest.fixture
def sample_config(sample_env):
    from appservice_kit.config import SampleConfig

    return SampleConfig(
        client_id=sample_env["CLIENT_ID"],
        client_secret=sample_env["CLIENT_SECRET"],
        tenant_id=sample_env["TENANT_ID"],
        subscription_id=sample_env["SUBSCRIPTION_ID"],
        readiness_max_wait=0.0,
    )
