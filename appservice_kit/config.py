from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv

from .errors import ConfigurationError
from .logging_utils import register_secret


ENV_FILES_DEFAULT_ORDER = [".env", ".env.azure", ".env.secrets"]

DEFAULT_APP_COMMAND_LINE = (
    "/bin/bash -c \"sed -ie 's/appBase=\\\"webapps\\\"/"
    "appBase=\\\"\\\\/home\\\\/site\\\\/wwwroot\\\\/webapps\\\"/g' "
    "conf/server.xml && catalina.sh run\""
)


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} 은(는) 정수여야 합니다: {raw!r}") from e


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} 은(는) 숫자여야 합니다: {raw!r}") from e


@dataclass
class SampleConfig:
    # 필수 (서비스 주체 인증)
    client_id: str
    client_secret: str
    tenant_id: str
    subscription_id: str

    region: str = "eastus"
    resource_group_prefix: str = "rg1NEMV_"
    webapp_prefix: str = "webapp"

    # 공통 웹앱 설정
    plan_sku: str = "S1"
    linux_fx_version: str = "TOMCAT|9.0-java11"
    app_port: int = 8080
    app_command_line: str = DEFAULT_APP_COMMAND_LINE

    # 배포 경로별 입력
    ftp_artifact_path: str = os.path.join("assets", "helloworld.war")
    local_git_source_dir: str = os.path.join("assets", "azure-samples-appservice-helloworld")
    public_repo_url: str = "https://github.com/azure-appservice-samples/java-get-started"
    public_repo_branch: str = "master"
    ci_repo_url: str = "https://github.com/azure-appservice-samples/java-get-started"
    ci_repo_branch: str = "master"
    github_token: Optional[str] = None

    # 준비 상태 확인 (지수 백오프)
    readiness_max_wait: float = 60.0
    readiness_initial_interval: float = 2.0
    readiness_max_interval: float = 15.0

    def __repr__(self) -> str:
        # client_secret / github_token 은 repr 에 노출하지 않는다.
        return (
            f"SampleConfig(client_id={self.client_id!r}, tenant_id={self.tenant_id!r}, "
            f"subscription_id={self.subscription_id!r}, region={self.region!r}, "
            f"plan_sku={self.plan_sku!r})"
        )

    @classmethod
    def from_env(cls) -> "SampleConfig":
        # 필수값
        missing: List[str] = []
        def req(name: str) -> str:
            val = os.getenv(name)
            if not val:
                missing.append(name)
            return val or ""

        client_id = req("CLIENT_ID")
        client_secret = req("CLIENT_SECRET")
        tenant_id = req("TENANT_ID")
        subscription_id = req("SUBSCRIPTION_ID")

        if missing:
            raise ConfigurationError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )

        defaults = cls(client_id="", client_secret="", tenant_id="", subscription_id="")
        cfg = cls(
            client_id=client_id,
            client_secret=client_secret,
            tenant_id=tenant_id,
            subscription_id=subscription_id,
            region=os.getenv("AZURE_REGION", defaults.region),
            resource_group_prefix=os.getenv("RESOURCE_GROUP_PREFIX", defaults.resource_group_prefix),
            webapp_prefix=os.getenv("WEBAPP_PREFIX", defaults.webapp_prefix),
            plan_sku=os.getenv("PLAN_SKU", defaults.plan_sku),
            linux_fx_version=os.getenv("LINUX_FX_VERSION", defaults.linux_fx_version),
            app_port=_get_int("APP_PORT", defaults.app_port),
            app_command_line=os.getenv("APP_COMMAND_LINE", defaults.app_command_line),
            ftp_artifact_path=os.getenv("FTP_ARTIFACT_PATH", defaults.ftp_artifact_path),
            local_git_source_dir=os.getenv("LOCAL_GIT_SOURCE_DIR", defaults.local_git_source_dir),
            public_repo_url=os.getenv("PUBLIC_REPO_URL", defaults.public_repo_url),
            public_repo_branch=os.getenv("PUBLIC_REPO_BRANCH", defaults.public_repo_branch),
            ci_repo_url=os.getenv("CI_REPO_URL", defaults.ci_repo_url),
            ci_repo_branch=os.getenv("CI_REPO_BRANCH", defaults.ci_repo_branch),
            github_token=os.getenv("GITHUB_TOKEN") or None,
            readiness_max_wait=_get_float("READINESS_MAX_WAIT_SECONDS", defaults.readiness_max_wait),
            readiness_initial_interval=_get_float(
                "READINESS_INITIAL_INTERVAL_SECONDS", defaults.readiness_initial_interval
            ),
            readiness_max_interval=_get_float(
                "READINESS_MAX_INTERVAL_SECONDS", defaults.readiness_max_interval
            ),
        )

        if cfg.readiness_max_wait < 0 or cfg.readiness_initial_interval <= 0:
            raise ConfigurationError(
                "READINESS_MAX_WAIT_SECONDS 는 0 이상, "
                "READINESS_INITIAL_INTERVAL_SECONDS 는 0 보다 커야 합니다."
            )

        register_secret(cfg.client_secret)
        register_secret(cfg.github_token)
        return cfg
