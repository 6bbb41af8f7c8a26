"""
ClubHub - FastAPI 웹 서버
스포츠 클럽 회원/초대/권한 관리 API

데이터 소스: Supabase (테이블 + Auth)
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.config import get_app_settings
from app.errors import ClubHubError

# Auth 모듈
from app.auth import auth_router

# Club Management 모듈
from app.club import club_router, join_router

settings = get_app_settings()

# FastAPI 앱
app = FastAPI(
    title=settings.app_name,
    description="Sports club management API for Malaysian clubs",
    version=settings.app_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.public_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(club_router)
app.include_router(join_router)


# ==================== 예외 처리 ====================

@app.exception_handler(ClubHubError)
async def club_hub_error_handler(request: Request, exc: ClubHubError):
    """도메인 예외 → status_code + 메시지"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code} {type(exc).__name__}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """저장소/클라이언트 오류 등 처리되지 않은 예외"""
    logger.exception(f"{request.method} {request.url.path} 처리 중 오류: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong. Please try again later."},
    )


# ==================== 상태 ====================

@app.on_event("startup")
async def startup_event():
    logger.info(f"{settings.app_name} v{settings.app_version} 시작 (public: {settings.public_base_url})")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{settings.app_name} 종료")


@app.get("/health")
async def health_check():
    """헬스 체크"""
    return {"status": "ok", "service": settings.app_name, "version": settings.app_version}
