"""
git_push
--------

로컬 소스 트리를 웹앱의 Local Git 원격(<scm-host>/<site>.git)으로 push 한다.

배포 자격 증명은 원격 URL 이나 명령 인자에 넣지 않고, 환경변수 GIT_CONFIG_* 로
http.extraHeader (Basic 인증 헤더)를 넘긴다. (git 2.31 이상)
"""

from __future__ import annotations

import base64
import os
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from .errors import DeployError, DeployErrorKind
from .logging_utils import get_logger, register_secret
from .models import PublishingCredentials
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)

Runner = Callable[..., RunResult]

_COMMIT_IDENTITY = ["-c", "user.name=appservice-kit", "-c", "user.email=appservice-kit@localhost"]


def scm_host(publish_url: str) -> str:
    """
    MSDeploy publishUrl("app.scm.azurewebsites.net:443") 에서 호스트만 꺼낸다.
    스킴이 붙어 있어도 처리한다.
    """
    raw = publish_url.strip()
    if "://" not in raw:
        raw = "https://" + raw
    host = urlparse(raw).hostname
    if not host:
        raise DeployError(
            DeployErrorKind.MALFORMED_CREDENTIALS,
            f"publishUrl 에서 호스트를 찾을 수 없습니다: {publish_url!r}",
        )
    return host


def build_remote_url(creds: PublishingCredentials, site_name: str) -> str:
    return f"https://{scm_host(creds.publish_url)}/{site_name}.git"


def auth_env(creds: PublishingCredentials, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """git push 용 환경변수. 현재 환경에 Basic 인증 헤더 설정을 덧붙인다."""
    token = base64.b64encode(f"{creds.username}:{creds.password}".encode("utf-8")).decode("ascii")
    register_secret(creds.password)
    register_secret(token)
    env = dict(os.environ if base is None else base)
    env.update(
        {
            "GIT_TERMINAL_PROMPT": "0",
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
        }
    )
    return env


def _git(
    runner: Runner,
    source_dir: str,
    args: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
) -> RunResult:
    cmd: List[str] = ["git", *args]
    return runner(cmd, cwd=source_dir, env=env, timeout=600.0)


def push_source(
    creds: PublishingCredentials,
    site_name: str,
    source_dir: str,
    *,
    branch: str = "master",
    runner: Runner = run_command,
) -> None:
    """
    source_dir 가 git 저장소가 아니면 init + commit 후, HEAD 를 원격 branch 로 강제 push 한다.
    git 실패는 DeployError(TRANSPORT).
    """
    if not os.path.isdir(source_dir):
        raise DeployError(
            DeployErrorKind.TRANSPORT,
            f"로컬 소스 디렉토리가 없습니다: {source_dir}",
            site=site_name,
        )

    remote = build_remote_url(creds, site_name)
    env = auth_env(creds)

    try:
        if not os.path.isdir(os.path.join(source_dir, ".git")):
            logger.info("git 저장소가 아니므로 초기화합니다: %s", source_dir)
            _git(runner, source_dir, ["init"])
            _git(runner, source_dir, ["add", "-A"])
            _git(runner, source_dir, [*_COMMIT_IDENTITY, "commit", "-m", "Initial commit"])

        _git(runner, source_dir, ["push", "--force", remote, f"HEAD:{branch}"], env=env)
    except RuntimeError as e:
        raise DeployError(DeployErrorKind.TRANSPORT, str(e), site=site_name) from None

    logger.info("git push 완료: %s -> %s (%s)", source_dir, site_name, branch)
