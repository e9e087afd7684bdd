"""
Grant or revoke a user's role flags.

The API has no endpoint for role changes; operators run this against the
configured DATABASE_URL:

    python tools/grant_role.py alice --admin
    python tools/grant_role.py alice --author --revoke
    python tools/grant_role.py --email alice@example.com --admin
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import select

from blogapi.config import Settings
from blogapi.database import build_engine, build_session_factory, dispose_engine
from blogapi.models import User

logger = logging.getLogger("blogapi.tools.grant_role")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grant or revoke Blog API user roles.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("username", nargs="?", help="Username of the account")
    target.add_argument("--email", help="Email of the account (instead of username)")
    parser.add_argument("--admin", action="store_true", help="Change the admin flag")
    parser.add_argument("--author", action="store_true", help="Change the author flag")
    parser.add_argument("--revoke", action="store_true", help="Clear the flags instead of setting them")
    return parser


async def apply_roles(settings: Settings, args: argparse.Namespace) -> int:
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            if args.email:
                query = select(User).where(User.email == args.email.lower())
            else:
                query = select(User).where(User.username == args.username)
            user = (await session.execute(query)).scalar_one_or_none()
            if user is None:
                logger.error("No such user: %s", args.email or args.username)
                return 1

            value = not args.revoke
            if args.admin:
                user.is_admin = value
            if args.author:
                user.is_author = value
            await session.commit()
            logger.info(
                "%s: is_admin=%s is_author=%s", user.username, user.is_admin, user.is_author
            )
            return 0
    finally:
        await dispose_engine(engine)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if not (args.admin or args.author):
        build_parser().error("choose at least one of --admin / --author")
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )
    return asyncio.run(apply_roles(Settings(), args))


if __name__ == "__main__":
    sys.exit(main())
