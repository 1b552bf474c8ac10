"""
dispatcher
----------

웹앱 하나에 대해 배포 방식(descriptor)에 맞는 배포를 수행하고,
마지막으로 공개 엔드포인트 준비 상태를 확인한다.

- FileTransfer          : publishing profile(FTP) -> FTP 업로드
- LocalVersionControl   : Local Git 활성화 -> publishing profile(MSDeploy) -> git push
- ExternalRepository    : 외부 저장소 URL/branch 연결 (continuous_integration 이면 자동 재배포)

자격 증명은 웹앱마다 새로 조회하며 다른 웹앱의 것을 재사용하지 않는다.
준비 상태 확인 타임아웃은 경고로만 기록된다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

from .azure_provider import Provider
from .errors import ReadinessTimeout
from .ftp_upload import upload_file
from .git_push import push_source
from .logging_utils import get_logger
from .models import (
    DeploymentDescriptor,
    DeployResult,
    ExternalRepository,
    FileTransfer,
    LocalVersionControl,
    SiteHandle,
    strategy_name,
)
from .publish_profile import parse_publishing_credentials
from .readiness import ProbeOutcome, wait_until_ready


logger = get_logger(__name__)

Probe = Callable[[str], ProbeOutcome]


@dataclass
class Transports:
    """실제 전송 구현. 테스트에서 교체할 수 있다."""

    upload: Callable[..., str] = upload_file
    push: Callable[..., None] = push_source


@dataclass
class DeployOptions:
    probe: Probe = wait_until_ready
    probe_path: str = "/"
    github_token: Optional[str] = None
    transports: Optional[Transports] = None


Handler = Callable[[Provider, SiteHandle, DeploymentDescriptor, DeployOptions], Optional[str]]


def _deploy_file_transfer(
    provider: Provider, site: SiteHandle, d: FileTransfer, opts: DeployOptions
) -> Optional[str]:
    logger.info("%s 를 FTP 로 %s 에 배포합니다...", d.artifact_path, site.name)
    profile = provider.get_publishing_profile(site, "Ftp")
    creds = parse_publishing_credentials(profile, "FTP", site=site.name)
    transports = opts.transports or Transports()
    remote = transports.upload(
        creds, d.artifact_path, remote_subdir=d.remote_subdir, site=site.name
    )
    return f"uploaded {remote}"


def _deploy_local_git(
    provider: Provider, site: SiteHandle, d: LocalVersionControl, opts: DeployOptions
) -> Optional[str]:
    logger.info("로컬 소스 %s 를 Git 으로 %s 에 배포합니다...", d.source_dir, site.name)
    provider.enable_local_git(site)
    profile = provider.get_publishing_profile(site, "WebDeploy")
    creds = parse_publishing_credentials(profile, "MSDeploy", site=site.name)
    transports = opts.transports or Transports()
    transports.push(creds, site.name, d.source_dir, branch=d.branch)
    return f"pushed {d.source_dir} -> {d.branch}"


def _deploy_external_repository(
    provider: Provider, site: SiteHandle, d: ExternalRepository, opts: DeployOptions
) -> Optional[str]:
    if d.continuous_integration:
        logger.info("%s 에 %s@%s 를 연결하고 continuous integration 을 켭니다...", site.name, d.url, d.branch)
        if opts.github_token:
            provider.register_github_token(opts.github_token)
        else:
            logger.warning("GITHUB_TOKEN 이 없어 GitHub 토큰 등록을 건너뜁니다: %s", site.name)
    else:
        logger.info("%s 에 공개 저장소 %s@%s 를 연결합니다...", site.name, d.url, d.branch)

    provider.bind_source_control(site, d)

    if not d.continuous_integration:
        return f"bound {d.url}@{d.branch}"

    state = provider.get_source_control(site)
    if state is None or not state.continuous_integration:
        logger.warning("continuous integration 이 활성화되지 않았습니다: %s (%s)", site.name, state)
        return f"bound {d.url}@{d.branch} (continuous integration not confirmed)"
    return f"bound {d.url}@{d.branch} (continuous integration on)"


_HANDLERS: Dict[Type, Handler] = {
    FileTransfer: _deploy_file_transfer,  # type: ignore[dict-item]
    LocalVersionControl: _deploy_local_git,  # type: ignore[dict-item]
    ExternalRepository: _deploy_external_repository,  # type: ignore[dict-item]
}


def deploy(
    provider: Provider,
    site: SiteHandle,
    descriptor: DeploymentDescriptor,
    options: Optional[DeployOptions] = None,
) -> DeployResult:
    """
    descriptor 타입에 맞는 핸들러 하나만 호출하고 준비 상태를 확인한다.
    실패는 DeployError 로 전파된다.
    """
    opts = options or DeployOptions()
    handler = _HANDLERS.get(type(descriptor))
    if handler is None:
        raise TypeError(f"알 수 없는 배포 방식입니다: {type(descriptor).__name__}")

    strategy = strategy_name(descriptor)
    detail = handler(provider, site, descriptor, opts)
    logger.info("배포 완료: %s (%s)", site.name, strategy)

    url = site.url.rstrip("/") + (opts.probe_path or "/")
    result = DeployResult(site=site.name, strategy=strategy, url=url, detail=detail)

    logger.info("웹앱 응답 대기 중: %s", url)
    outcome = opts.probe(url)
    result.ready = outcome.ready
    if not outcome.ready:
        warning = ReadinessTimeout(
            site=site.name,
            url=url,
            waited_seconds=outcome.waited_seconds,
            attempts=outcome.attempts,
            last_status=outcome.last_status,
        )
        result.warnings.append(warning)
        logger.warning("준비 상태 확인 타임아웃 (계속 진행): %s", warning)

    return result
