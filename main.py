"""Social Archiver: 엔트리포인트.

1. 설정 로드 (.env + config/settings.yaml)
2. 의존성 컨테이너 조립
3. 명령 실행 (capture / archive-html / serve)

브라우저 캡처는 CDP를 통해 사용자의 Chrome 브라우저에 연결하여 수행.
Chrome을 --remote-debugging-port=9222 로 실행한 상태에서 사용.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn

# 프로젝트 루트를 sys.path에 추가
sys.path.insert(0, str(Path(__file__).parent))

from social_archiver.domain.entities import ArchiveRun, PageSnapshot, Platform
from social_archiver.domain.exceptions import ConfigurationError
from social_archiver.infrastructure.config.container import Container
from social_archiver.infrastructure.config.settings import AppConfig, Settings, load_app_config
from social_archiver.presentation.web.app import create_app

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    Path("logs").mkdir(exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("logs/app.log", encoding="utf-8"),
        ],
    )


def print_run(run: ArchiveRun) -> None:
    print(f"[{run.source}] {run.status}: {run.posts_archived}/{run.posts_found}건 아카이브")
    if run.error_message:
        print(f"  오류: {run.error_message}")
    for result in run.results:
        if result.success:
            print(f"  + {result.final_path} (미디어 {result.media_saved}건, 누락 {result.media_omitted}건)")
        else:
            print(f"  - {result.post_id}: {result.reason}")


async def run_server(settings: Settings, config: AppConfig) -> None:
    """웹 API 서버 실행."""
    container = Container(settings=settings, app_config=config)

    app = create_app(container)
    server_config = uvicorn.Config(
        app,
        host=config.web.host,
        port=config.web.port,
        log_level="info",
    )
    server = uvicorn.Server(server_config)

    logger.info(f"서버 시작: http://{config.web.host}:{config.web.port}")
    try:
        await server.serve()
    finally:
        await container.aclose()


async def run_capture(settings: Settings, config: AppConfig, platforms: list[Platform]) -> None:
    """지정한 플랫폼 탭을 즉시 캡처하여 아카이브."""
    container = Container(settings=settings, app_config=config)
    try:
        use_case = container.capture_feed_use_case()
        for platform in platforms:
            print(f"[{platform.value}] 캡처 시작...")
            run = await use_case.execute(platform)
            print_run(run)
    finally:
        await container.aclose()


async def run_archive_html(
    settings: Settings,
    config: AppConfig,
    html_path: Path,
    url: str,
    platform: Optional[Platform],
) -> None:
    """저장된 HTML 파일을 스냅샷으로 아카이브."""
    html = await asyncio.to_thread(html_path.read_text, encoding="utf-8")
    container = Container(settings=settings, app_config=config)
    try:
        snapshot = PageSnapshot(html=html, url=url)
        run = await container.capture_feed_use_case().archive_snapshot(snapshot, platform)
        print_run(run)
    finally:
        await container.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Social Archiver")
    parser.add_argument("--config", default="config/settings.yaml", help="YAML 설정 파일 경로")
    subparsers = parser.add_subparsers(dest="command", help="실행 명령")

    # capture 명령
    capture_parser = subparsers.add_parser("capture", help="Chrome 탭 캡처 후 아카이브")
    capture_parser.add_argument(
        "platforms", nargs="*", choices=[p.value for p in Platform], default=[],
        help="캡처할 플랫폼 (기본: 설정의 capture.platforms)",
    )

    # archive-html 명령
    html_parser = subparsers.add_parser("archive-html", help="저장된 HTML 파일 아카이브")
    html_parser.add_argument("file", type=Path, help="HTML 파일 경로")
    html_parser.add_argument("--url", required=True, help="원본 페이지 URL")
    html_parser.add_argument(
        "--platform", choices=[p.value for p in Platform], default=None,
        help="플랫폼 (기본: URL로 판별)",
    )

    # serve 명령
    subparsers.add_parser("serve", help="웹 API 서버 시작")

    args = parser.parse_args()

    try:
        settings = Settings()
        config = load_app_config(args.config)
    except ConfigurationError as e:
        print(f"설정 오류: {e}")
        sys.exit(2)

    setup_logging(config.log_level)

    if args.command == "serve":
        asyncio.run(run_server(settings, config))
    elif args.command == "capture":
        platforms = [Platform(p) for p in args.platforms] or config.capture.platforms
        asyncio.run(run_capture(settings, config, platforms))
    elif args.command == "archive-html":
        platform = Platform(args.platform) if args.platform else None
        asyncio.run(run_archive_html(settings, config, args.file, args.url, platform))
    else:
        parser.print_help()
        print("\n사용 방법:")
        print("  1. Chrome을 디버그 모드로 실행:")
        print('     "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe" --remote-debugging-port=9222')
        print("  2. .env에 VAULT_PATH(보관 폴더)를 지정")
        print("  3. 실행:")
        print("     python main.py capture               # 설정된 플랫폼 전부 캡처")
        print("     python main.py capture linkedin      # LinkedIn만 캡처")
        print("     python main.py archive-html page.html --url https://www.facebook.com/")
        print("     python main.py serve                 # 웹 API 시작")


if __name__ == "__main__":
    main()
