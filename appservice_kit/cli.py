import signal
import sys
import threading

import click

from .azure_auth import build_credential, describe_subscription
from .azure_provider import AzureProvider
from .config import load_env_files, SampleConfig
from .errors import EXIT_UNEXPECTED, ConfigurationError
from .logging_utils import setup_logging, get_logger
from .orchestrator import build_site_specs, new_resource_group_name, plan_all, run_sample


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 Azure SDK HTTP 로그까지 출력)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """Azure App Service 웹앱 4개 생성 / 배포 / 정리 샘플 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_config_from_ctx(ctx: click.Context) -> SampleConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = SampleConfig.from_env()
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _load_config_or_exit(ctx: click.Context) -> SampleConfig:
    try:
        return _load_config_from_ctx(ctx)
    except ConfigurationError as e:
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(e.exit_code)


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """생성될 리소스 그룹 / 웹앱 / 배포 방식을 출력 (Azure 호출 없음)"""
    cfg = _load_config_or_exit(ctx)
    click.echo(plan_all(cfg, build_site_specs(cfg), new_resource_group_name(cfg)))


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """서비스 주체 인증과 구독 접근을 확인 (리소스는 만들지 않음)"""
    cfg = _load_config_or_exit(ctx)
    try:
        text = describe_subscription(cfg)
    except ConfigurationError as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(e.exit_code)
    click.echo(f"Selected subscription: {text}")


def _install_cancel_handlers(cancel: threading.Event) -> None:
    def _handler(signum, frame) -> None:  # noqa: ANN001, ARG001
        logger.warning("신호 %s 수신: 현재 단계가 끝나면 중단하고 리소스를 정리합니다.", signum)
        cancel.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handler)
        except ValueError:
            # 메인 스레드가 아니면 신호 핸들러를 설치할 수 없다.
            logger.debug("신호 핸들러 설치 불가: %s", sig)


@main.command(name="run")
@click.pass_context
def run(ctx: click.Context) -> None:
    """웹앱 4개를 생성/배포하고 마지막에 리소스 그룹을 삭제"""
    cfg = _load_config_or_exit(ctx)

    try:
        credential = build_credential(cfg)
        describe_subscription(cfg, credential)
    except ConfigurationError as e:
        click.echo(f"[ERROR] {e}", err=True)
        sys.exit(e.exit_code)

    cancel = threading.Event()
    _install_cancel_handlers(cancel)

    provider = AzureProvider(credential, cfg.subscription_id)
    try:
        report = run_sample(cfg, provider, cancel=cancel)
    except Exception as e:  # noqa: BLE001
        logger.exception("샘플 실행 중 예기치 않은 오류 발생")
        click.echo(f"[ERROR] 실행 실패: {e}", err=True)
        sys.exit(EXIT_UNEXPECTED)

    click.echo(report.summary())
    if report.exit_code:
        sys.exit(report.exit_code)
