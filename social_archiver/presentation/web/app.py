"""FastAPI 웹 애플리케이션 팩토리."""

from __future__ import annotations

from fastapi import FastAPI

from social_archiver.infrastructure.config.container import Container
from social_archiver.presentation.web.routes import api


def create_app(container: Container) -> FastAPI:
    app = FastAPI(title="Social Archiver", version="0.1.0")

    # 컨테이너를 앱 state에 저장
    app.state.container = container

    # 라우터 등록
    app.include_router(api.router, prefix="/api")

    return app
