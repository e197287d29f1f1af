"""FastAPI 앱 팩토리"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_search.api import booking_router, health_router, register_exception_handlers
from booking_search.core.config import settings
from booking_search.core.logging import logger
from booking_search.providers import create_default_providers
from booking_search.services.impl.booking_search_service import BookingSearchService


def create_app(service: Optional[BookingSearchService] = None) -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Args:
        service: 주입할 서비스 (None이면 lifespan에서 설정 기반으로 생성)

    Returns:
        FastAPI 앱 인스턴스
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """애플리케이션 생명주기"""
        logger.info("Starting application...")
        booking_service = service or BookingSearchService(
            providers=create_default_providers(settings),
            config=settings,
        )
        await booking_service.start()
        app.state.booking_service = booking_service
        logger.info(f"Application started ({len(booking_service.get_providers())} providers)")
        yield
        logger.info("Shutting down application...")
        await booking_service.shutdown()

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(booking_router)

    return app


# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
