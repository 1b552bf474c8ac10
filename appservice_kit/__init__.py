"""
appservice_kit
--------------

Azure App Service 소스 제어/배포 샘플 CLI 패키지.
리소스 그룹 하나에 App Service 플랜과 웹앱 4개를 만들고,
FTP / Local Git / 공개 GitHub 저장소 / GitHub continuous integration 으로 각각 배포한 뒤
리소스 그룹을 삭제한다.
"""

__all__ = [
    "config",
    "orchestrator",
]
