"""
publish_profile
---------------

웹앱 publishing profile XML 에서 배포 자격 증명을 추출한다.

App Service 가 돌려주는 XML 은 보통 다음 형태이다.

    <publishData>
      <publishProfile publishMethod="MSDeploy" publishUrl="app.scm.azurewebsites.net:443"
                      userName="$app" userPWD="..." />
      <publishProfile publishMethod="FTP" publishUrl="ftps://.../site/wwwroot"
                      userName="app\\$app" userPWD="..." />
    </publishData>

일부 포맷(FileZilla 등)은 같은 값을 속성이 아닌 하위 엘리먼트로 내려주므로 둘 다 지원한다.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from .errors import DeployError, DeployErrorKind
from .logging_utils import register_secret
from .models import PublishingCredentials


_REQUIRED = ("publishUrl", "userName", "userPWD")


def _entries(xml_text: str) -> List[Dict[str, str]]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise DeployError(
            DeployErrorKind.MALFORMED_CREDENTIALS,
            f"publishing profile XML 을 파싱할 수 없습니다: {e}",
        ) from e

    nodes = [root] if root.tag == "publishProfile" else list(root.iter("publishProfile"))
    entries: List[Dict[str, str]] = []
    for node in nodes:
        values = dict(node.attrib)
        for child in node:
            if child.text and child.text.strip():
                values.setdefault(child.tag, child.text.strip())
        entries.append(values)

    if not entries:
        # publishProfile 노드 없이 최상위에 값만 있는 포맷
        values = {}
        for tag in _REQUIRED:
            el = root.find(f".//{tag}")
            if el is not None and el.text:
                values[tag] = el.text.strip()
        if values:
            entries.append(values)
    return entries


def parse_publishing_credentials(
    xml_text: str,
    method: str,
    *,
    site: Optional[str] = None,
) -> PublishingCredentials:
    """
    method (FTP / MSDeploy) 에 해당하는 항목에서 PublishingCredentials 를 만든다.
    필요한 필드가 없으면 DeployError(MALFORMED_CREDENTIALS).
    """
    entries = _entries(xml_text)
    wanted = method.lower()

    matched = [e for e in entries if e.get("publishMethod", "").lower() == wanted]
    if not matched:
        # publishMethod 가 없는 단일 항목 포맷은 그대로 사용
        matched = [e for e in entries if "publishMethod" not in e]
    if not matched:
        raise DeployError(
            DeployErrorKind.MALFORMED_CREDENTIALS,
            f"publishing profile 에 {method} 항목이 없습니다.",
            site=site,
        )

    entry = matched[0]
    missing = [k for k in _REQUIRED if not entry.get(k)]
    if missing:
        raise DeployError(
            DeployErrorKind.MALFORMED_CREDENTIALS,
            f"publishing profile({method}) 에 필드가 없습니다: {', '.join(missing)}",
            site=site,
        )

    register_secret(entry["userPWD"])
    return PublishingCredentials(
        publish_url=entry["publishUrl"],
        username=entry["userName"],
        password=entry["userPWD"],
        method=method,
    )
