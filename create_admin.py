"""Create an admin account, or promote an existing user to admin.

    python create_admin.py --name "Ops" --email ops@example.com
"""

import argparse
import getpass
import sys

from backend import RedisBackend, UserExistsError
from constants import LOG_LEVEL
from logging_config import get_logger, setup_logging
from security import hash_password

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True, help="Login email")
    parser.add_argument("--password", help="Plain-text password (omit to be prompted)")
    return parser


def create_admin(backend: RedisBackend, name: str, email: str, password: str) -> dict:
    password_hash = hash_password(password)
    try:
        return backend.create_user(name, email, password_hash, role="admin")
    except UserExistsError:
        existing = backend.get_user_by_email(email)
        logger.info(f"{email} already registered, promoting user {existing['id']} to admin")
        return backend.update_user(existing["id"], {"name": name, "role": "admin", "password_hash": password_hash})


def main(argv=None) -> int:
    setup_logging(log_level=LOG_LEVEL)
    args = build_parser().parse_args(argv)

    password = args.password or getpass.getpass("Password: ")
    if not password:
        logger.error("Password must not be empty")
        return 1

    backend = RedisBackend()
    backend.ping()
    user = create_admin(backend, args.name, args.email, password)
    logger.info(f"Admin ready: {user['email']} (id {user['id']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
