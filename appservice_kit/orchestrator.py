from __future__ import annotations

import functools
import threading
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from .azure_provider import Provider
from .config import SampleConfig
from .dispatcher import DeployOptions, deploy
from .errors import EXIT_OK, DeployError, OperationCancelled, SampleError
from .logging_utils import get_logger
from .models import (
    DeployResult,
    ExternalRepository,
    FileTransfer,
    LocalVersionControl,
    ResourceGroupHandle,
    SiteSpec,
    strategy_name,
)
from .naming import generate_site_names, random_name
from . import provisioner
from .readiness import wait_until_ready
from .teardown import TeardownOutcome, teardown


logger = get_logger(__name__)

SITE_COUNT = 4


def build_site_specs(cfg: SampleConfig, names: Optional[Sequence[str]] = None) -> List[SiteSpec]:
    """
    웹앱 4개를 정의한다. (선언 순서대로 배포된다)

    1. FTP 로 .war 업로드
    2. Local Git push
    3. 공개 GitHub 저장소 연결
    4. GitHub 저장소 연결 + continuous integration
    """
    names = list(names) if names is not None else generate_site_names(cfg.webapp_prefix, SITE_COUNT)
    if len(names) != SITE_COUNT:
        raise ValueError(f"웹앱 이름은 {SITE_COUNT}개가 필요합니다: {names}")

    settings = {"PORT": str(cfg.app_port)}
    common = dict(
        region=cfg.region,
        startup_command=cfg.app_command_line,
        linux_fx_version=cfg.linux_fx_version,
        plan_sku=cfg.plan_sku,
    )
    return [
        SiteSpec(
            name=names[0],
            descriptor=FileTransfer(artifact_path=cfg.ftp_artifact_path),
            probe_path="/helloworld",
            app_settings=dict(settings),
            **common,
        ),
        SiteSpec(
            name=names[1],
            descriptor=LocalVersionControl(source_dir=cfg.local_git_source_dir),
            probe_path="/helloworld",
            app_settings=dict(settings),
            **common,
        ),
        SiteSpec(
            name=names[2],
            descriptor=ExternalRepository(url=cfg.public_repo_url, branch=cfg.public_repo_branch),
            app_settings=dict(settings),
            **common,
        ),
        SiteSpec(
            name=names[3],
            descriptor=ExternalRepository(
                url=cfg.ci_repo_url, branch=cfg.ci_repo_branch, continuous_integration=True
            ),
            app_settings=dict(settings),
            **common,
        ),
    ]


def new_resource_group_name(cfg: SampleConfig) -> str:
    return random_name(cfg.resource_group_prefix, 24)


def make_deploy_options(cfg: SampleConfig, cancel: Optional[threading.Event] = None) -> DeployOptions:
    probe = functools.partial(
        wait_until_ready,
        max_wait=cfg.readiness_max_wait,
        initial_interval=cfg.readiness_initial_interval,
        max_interval=cfg.readiness_max_interval,
        cancel=cancel,
    )
    return DeployOptions(probe=probe, github_token=cfg.github_token)


@dataclass
class RunReport:
    resource_group: str
    sites_attempted: List[str] = field(default_factory=list)
    sites_created: List[str] = field(default_factory=list)
    results: List[DeployResult] = field(default_factory=list)
    not_attempted: List[str] = field(default_factory=list)
    error: Optional[SampleError] = None
    teardown: Optional[TeardownOutcome] = None

    @property
    def exit_code(self) -> int:
        return self.error.exit_code if self.error is not None else EXIT_OK

    @property
    def warnings(self) -> List[str]:
        return [str(w) for r in self.results for w in r.warnings]

    def summary(self) -> str:
        lines: List[str] = []
        lines.append("# Run summary")
        lines.append(f"- resource group: {self.resource_group}")
        lines.append("")

        lines.append("## Deployed sites")
        if self.results:
            for r in self.results:
                status = "ready" if r.ready else "not ready"
                lines.append(f"- {r.site} ({r.strategy}): {status} {r.url}")
        else:
            lines.append("- (none)")

        lines.append("")
        lines.append("## Not attempted")
        if self.not_attempted:
            for s in self.not_attempted:
                lines.append(f"- {s}")
        else:
            lines.append("- (none)")

        lines.append("")
        lines.append("## Warnings")
        if self.warnings:
            for w in self.warnings:
                lines.append(f"- {w}")
        else:
            lines.append("- (none)")

        lines.append("")
        lines.append("## Result")
        if self.error is not None:
            lines.append(f"- FAILED ({type(self.error).__name__}): {self.error}")
        else:
            lines.append("- OK")
        lines.append(f"- teardown: {self.teardown.value if self.teardown else '(not run)'}")

        return "\n".join(lines)


def _check_cancelled(cancel: Optional[threading.Event], where: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(f"실행이 취소되었습니다 ({where})")


def run_sample(
    cfg: SampleConfig,
    provider: Provider,
    *,
    specs: Optional[Sequence[SiteSpec]] = None,
    group_name: Optional[str] = None,
    options: Optional[DeployOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> RunReport:
    """
    리소스 그룹 생성 -> 웹앱 생성/배포(선언 순서) -> 리소스 그룹 삭제.

    SampleError 는 이후 단계를 중단하고 report.error 에 기록된다.
    그 외 예외는 리소스 그룹 삭제 후 그대로 전파된다.
    삭제 시도는 어떤 경로로 끝나든 정확히 한 번 수행된다.
    """
    site_specs = list(specs) if specs is not None else build_site_specs(cfg)
    rg_name = group_name or new_resource_group_name(cfg)
    opts = options or make_deploy_options(cfg, cancel)

    report = RunReport(resource_group=rg_name)
    group: Optional[ResourceGroupHandle] = None

    try:
        provisioner.ensure_unique_names(site_specs)
        _check_cancelled(cancel, "리소스 그룹 생성 전")
        group = provisioner.create_resource_group(provider, rg_name, cfg.region)

        plan_id: Optional[str] = None
        for spec in site_specs:
            _check_cancelled(cancel, f"{spec.name} 생성 전")
            report.sites_attempted.append(spec.name)
            site = provisioner.create_site(provider, group, spec, plan_id)
            report.sites_created.append(site.name)
            if plan_id is None:
                plan_id = site.plan_id

            _check_cancelled(cancel, f"{spec.name} 배포 전")
            try:
                result = deploy(provider, site, spec.descriptor, replace(opts, probe_path=spec.probe_path))
            except DeployError as e:
                if e.site is None:
                    e.site = spec.name
                raise
            report.results.append(result)
    except SampleError as e:
        report.error = e
        logger.error("실행 실패 (%s): %s", type(e).__name__, e)
    finally:
        report.not_attempted = [
            f"{s.name} ({strategy_name(s.descriptor)})"
            for s in site_specs
            if s.name not in report.sites_attempted
        ]
        report.teardown = teardown(provider, group)

    return report


def plan_all(cfg: SampleConfig, specs: Sequence[SiteSpec], group_name: str) -> str:
    """
    실제 Azure 호출 없이 생성/배포 예정 내용을 요약한다.
    """
    lines: List[str] = []
    lines.append("# Sample plan")
    lines.append(f"- subscription: {cfg.subscription_id}")
    lines.append(f"- region: {cfg.region}")
    lines.append(f"- resource group: {group_name}")
    lines.append(f"- plan sku: {cfg.plan_sku} (첫 번째 웹앱과 함께 생성, 이후 공유)")
    lines.append(f"- runtime: {cfg.linux_fx_version}")
    lines.append("")

    lines.append("## Sites")
    for idx, spec in enumerate(specs, start=1):
        d = spec.descriptor
        if isinstance(d, FileTransfer):
            target = d.artifact_path
        elif isinstance(d, LocalVersionControl):
            target = f"{d.source_dir} -> {d.branch}"
        else:
            target = f"{d.url}@{d.branch}"
        lines.append(f"{idx}. {spec.name} [{strategy_name(d)}] {target}")

    lines.append("")
    lines.append("## Readiness")
    lines.append(
        f"- max wait {cfg.readiness_max_wait:g}s, interval "
        f"{cfg.readiness_initial_interval:g}s -> {cfg.readiness_max_interval:g}s"
    )
    lines.append("")
    lines.append("리소스 그룹은 실행 결과와 관계없이 마지막에 삭제됩니다.")
    return "\n".join(lines)
