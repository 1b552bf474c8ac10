"""
ftp_upload
----------

publishing profile 의 FTP 항목으로 아티팩트(.war 등)를 웹앱에 업로드한다.
"""

from __future__ import annotations

import ftplib
import os
import posixpath
from typing import Callable, Optional
from urllib.parse import urlparse

from .errors import DeployError, DeployErrorKind
from .logging_utils import get_logger
from .models import PublishingCredentials


logger = get_logger(__name__)

FtpFactory = Callable[[bool], ftplib.FTP]


def _default_factory(use_tls: bool) -> ftplib.FTP:
    return ftplib.FTP_TLS(timeout=60) if use_tls else ftplib.FTP(timeout=60)


def _ensure_dir(ftp: ftplib.FTP, name: str) -> None:
    try:
        ftp.cwd(name)
    except ftplib.error_perm:
        ftp.mkd(name)
        ftp.cwd(name)


def upload_file(
    creds: PublishingCredentials,
    artifact_path: str,
    *,
    remote_subdir: Optional[str] = "webapps",
    site: Optional[str] = None,
    ftp_factory: FtpFactory = _default_factory,
) -> str:
    """
    artifact_path 를 <publishUrl 경로>/<remote_subdir>/ 아래로 업로드하고
    원격 경로를 반환한다. 연결/인증/전송 실패는 DeployError(TRANSPORT).
    """
    if not os.path.isfile(artifact_path):
        raise DeployError(
            DeployErrorKind.TRANSPORT,
            f"업로드할 파일이 없습니다: {artifact_path}",
            site=site,
        )

    url = creds.publish_url if "://" in creds.publish_url else "ftp://" + creds.publish_url
    parsed = urlparse(url)
    if not parsed.hostname:
        raise DeployError(
            DeployErrorKind.MALFORMED_CREDENTIALS,
            f"FTP publishUrl 에서 호스트를 찾을 수 없습니다: {creds.publish_url!r}",
            site=site,
        )

    use_tls = parsed.scheme.lower() == "ftps"
    base_dir = parsed.path or "/"
    filename = os.path.basename(artifact_path)
    remote_path = posixpath.join(base_dir, remote_subdir or "", filename)

    logger.info(
        "FTP 업로드: %s -> %s%s (tls=%s)", artifact_path, parsed.hostname, remote_path, use_tls
    )

    ftp = ftp_factory(use_tls)
    try:
        ftp.connect(parsed.hostname, parsed.port or 21)
        ftp.login(creds.username, creds.password)
        if use_tls and isinstance(ftp, ftplib.FTP_TLS):
            ftp.prot_p()
        ftp.set_pasv(True)
        ftp.cwd(base_dir)
        if remote_subdir:
            _ensure_dir(ftp, remote_subdir)
        with open(artifact_path, "rb") as f:
            ftp.storbinary(f"STOR {filename}", f)
    except (ftplib.Error, OSError, EOFError) as e:
        raise DeployError(
            DeployErrorKind.TRANSPORT,
            f"FTP 업로드 실패 ({parsed.hostname}): {e}",
            site=site,
        ) from e
    finally:
        try:
            ftp.quit()
        except (ftplib.Error, OSError, EOFError, AttributeError):
            ftp.close()

    logger.info("FTP 업로드 완료: %s", remote_path)
    return remote_path
