from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .errors import ReadinessTimeout


@dataclass(frozen=True)
class ResourceGroupHandle:
    name: str
    region: str
    id: Optional[str] = None


@dataclass(frozen=True)
class PublishingCredentials:
    """
    웹앱 배포용 자격 증명.
    password 는 repr 에 포함되지 않으며 로그에 남기지 않는다.
    """

    publish_url: str
    username: str
    password: str = field(repr=False)
    method: str = "FTP"


# -----------------------------
# Deployment descriptors
# -----------------------------


@dataclass(frozen=True)
class FileTransfer:
    artifact_path: str
    remote_subdir: str = "webapps"


@dataclass(frozen=True)
class LocalVersionControl:
    source_dir: str
    branch: str = "master"


@dataclass(frozen=True)
class ExternalRepository:
    url: str
    branch: str = "master"
    continuous_integration: bool = False


DeploymentDescriptor = Union[FileTransfer, LocalVersionControl, ExternalRepository]


def strategy_name(descriptor: DeploymentDescriptor) -> str:
    if isinstance(descriptor, FileTransfer):
        return "ftp"
    if isinstance(descriptor, LocalVersionControl):
        return "local-git"
    if isinstance(descriptor, ExternalRepository):
        return "github-ci" if descriptor.continuous_integration else "public-git"
    raise TypeError(f"알 수 없는 배포 방식입니다: {type(descriptor).__name__}")


@dataclass(frozen=True)
class SiteSpec:
    """생성할 웹앱 한 개의 정의. descriptor 는 생성 시점에 고정된다."""

    name: str
    region: str
    descriptor: DeploymentDescriptor
    app_settings: Dict[str, str] = field(default_factory=dict)
    startup_command: Optional[str] = None
    linux_fx_version: Optional[str] = None
    plan_sku: str = "S1"
    probe_path: str = "/"


@dataclass(frozen=True)
class SiteHandle:
    name: str
    resource_group: str
    region: str
    plan_id: str
    default_host_name: str
    state: Optional[str] = None

    @property
    def url(self) -> str:
        return f"http://{self.default_host_name}"


@dataclass(frozen=True)
class SourceControlState:
    """웹앱에 연결된 외부 저장소 상태 (provider 조회 결과)."""

    repo_url: Optional[str]
    branch: Optional[str]
    continuous_integration: bool


@dataclass
class DeployResult:
    site: str
    strategy: str
    url: str
    ready: bool = False
    warnings: List[ReadinessTimeout] = field(default_factory=list)
    detail: Optional[str] = None
