"""
사용자를 superadmin 으로 승격

사용법: python -m scripts.make_superadmin <user_id>
        python -m scripts.make_superadmin <user_id> --revoke
"""
import argparse
import asyncio
import sys

from loguru import logger

from app.auth.models import UserRole
from app.auth.service import UserDirectory
from app.errors import UserNotFound


async def set_platform_role(user_id: str, role: UserRole, directory: UserDirectory = None) -> bool:
    """users.auth.role 변경. 사용자 문서가 없으면 False"""
    directory = directory or UserDirectory()
    try:
        await directory.set_role(user_id, role)
    except UserNotFound:
        logger.error(f"사용자 문서 없음: {user_id}")
        return False
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="superadmin 역할 부여/회수")
    parser.add_argument("user_id", help="Supabase Auth 사용자 ID")
    parser.add_argument("--revoke", action="store_true", help="member 로 되돌림")
    args = parser.parse_args(argv)

    role = UserRole.MEMBER if args.revoke else UserRole.SUPERADMIN
    ok = asyncio.run(set_platform_role(args.user_id, role))
    if ok:
        logger.info(f"{args.user_id} → {role.value}")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
