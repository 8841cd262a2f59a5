"""
Postboard Backend - Command Line
================================

What:  `postboard create-user` registers an account from the terminal.
How:   Prompts for every field (the password without echo), validates with the
       same UserCreate schema and e-mail rule as the HTTP registration, asks for
       confirmation and runs UserService.create inside one transaction.

Exit codes:
    0  user created, or creation cancelled at the confirmation prompt
    1  invalid input, e-mail already taken, or the user cap is reached

Usage:
    postboard create-user
    python -m postboard.cli create-user
    postboard --version
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postboard import __version__
from postboard.database import async_session_factory, dispose_engine
from postboard.exceptions import RegistrationLimitError, ValidationError, collect_field_errors
from postboard.schemas.user import UserCreate
from postboard.services.user_service import user_service

Prompt = Callable[[str], str]
Echo = Callable[[str], None]

FIELD_PROMPTS = (
    ("name", "Full name: "),
    ("age", "Age: "),
    ("birth_date", "Birth date (YYYY-MM-DD): "),
    ("phone", "Phone: "),
    ("email", "Email: "),
)


def _print_errors(echo: Echo, errors: Dict[str, List[str]]) -> None:
    echo("Invalid data:")
    for field, messages in errors.items():
        for message in messages:
            echo(f"  - {field}: {message}")


async def create_user(
    ask: Prompt = input,
    ask_secret: Prompt = getpass.getpass,
    echo: Echo = print,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Interactive registration; returns the process exit code."""
    echo("Creating a new user...")

    raw = {field: ask(prompt) for field, prompt in FIELD_PROMPTS}
    raw["password"] = ask_secret("Password: ")

    try:
        data = UserCreate.model_validate(raw)
    except PydanticValidationError as e:
        _print_errors(echo, collect_field_errors(e.errors(include_url=False)))
        return 1

    answer = ask("Are you sure you want to create this user? [y/N] ")
    if answer.strip().lower() not in ("y", "yes"):
        echo("User creation cancelled.")
        return 0

    factory = session_factory or async_session_factory
    try:
        async with factory() as session:
            async with session.begin():
                await user_service.ensure_email_available(session, data.email)
                user = await user_service.create(session, data)
    except ValidationError as e:
        _print_errors(echo, e.errors)
        return 1
    except RegistrationLimitError as e:
        echo(e.message)
        return 1

    echo(f"User created successfully! (id={user.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="postboard", description="Postboard administration")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at INFO level")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("create-user", help="create a user interactively")
    return parser


async def _run_create_user() -> int:
    try:
        return await create_user()
    finally:
        await dispose_engine()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "create-user":
        try:
            return asyncio.run(_run_create_user())
        except (KeyboardInterrupt, EOFError):
            print("\nUser creation cancelled.")
            return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
