"""
ClubHub API 서버 메인
"""
import argparse
import sys

import uvicorn
from loguru import logger

from app.config import AppSettings, get_app_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(settings: AppSettings) -> None:
    """stderr + 일별 로그 파일"""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=settings.log_level)
    logger.add(
        f"{settings.log_dir}/clubhub_{{time:YYYY-MM-DD}}.log",
        rotation="1 day",
        retention="30 days",
        level="DEBUG",
    )


def main():
    """메인 함수"""
    parser = argparse.ArgumentParser(description="ClubHub API 서버")
    parser.add_argument("--host", default="0.0.0.0", help="바인드 주소")
    parser.add_argument("--port", type=int, default=8000, help="포트")
    parser.add_argument("--reload", action="store_true", help="코드 변경 시 재시작 (개발용)")
    args = parser.parse_args()

    settings = get_app_settings()
    setup_logging(settings)
    logger.info(f"{settings.app_name} 서버 실행: {args.host}:{args.port}")

    uvicorn.run(
        "app.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
