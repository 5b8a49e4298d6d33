import argparse
import asyncio
import logging
import secrets
from typing import List, Optional

from sqlalchemy.ext.asyncio import create_async_engine

from social.graze.credmodel.cli import configure_logging
from social.graze.credmodel.config import Settings
from social.graze.credmodel.password import BcryptPasswordHasher
from social.graze.credmodel.store import CredentialStore

logger = logging.getLogger(__name__)


async def initDb(database_url: str) -> None:
    engine = create_async_engine(database_url)
    try:
        await CredentialStore.from_engine(engine).create_all()
        print("Tables created")
    finally:
        await engine.dispose()


async def addClient(
    database_url: str,
    client_id: str,
    client_secret: Optional[str],
    redirect_uris: List[str],
    grants: List[str],
    access_token_lifetime: int,
    refresh_token_lifetime: int,
    domain: str,
    user_id: Optional[str],
) -> None:
    if client_secret is None:
        client_secret = secrets.token_urlsafe(48)

    engine = create_async_engine(database_url)
    try:
        store = CredentialStore.from_engine(engine)
        await store.create_client(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uris=redirect_uris,
            grants=grants,
            access_token_lifetime=access_token_lifetime,
            refresh_token_lifetime=refresh_token_lifetime,
            domain=domain,
            user_id=user_id,
        )
        print(f"{client_id} created with secret: {client_secret}")
    finally:
        await engine.dispose()


async def genSecret() -> None:
    print(secrets.token_urlsafe(48))


async def hashPassword(password: str, rounds: int) -> None:
    print(BcryptPasswordHasher(rounds=rounds).hash(password))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credutil", description="Credential model utilities"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async URL. Defaults to PG_DSN / DATABASE_URL.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    _ = subparsers.add_parser("init-db", help="Create the credential tables")
    _ = subparsers.add_parser("gen-secret", help="Generate a client secret")

    hash_password = subparsers.add_parser("hash-password", help="Hash a password")
    hash_password.add_argument("password", help="The plaintext password.")
    hash_password.add_argument("--rounds", type=int, default=12)

    add_client = subparsers.add_parser("add-client", help="Register an OAuth2 client")
    add_client.add_argument("client_id", help="The public client identifier.")
    add_client.add_argument("domain", help="Audience placed in issued tokens.")
    add_client.add_argument(
        "--secret", default=None, help="Client secret. Generated when omitted."
    )
    add_client.add_argument(
        "--redirect-uri", action="append", default=[], dest="redirect_uris"
    )
    add_client.add_argument(
        "--grant",
        action="append",
        default=None,
        dest="grants",
        help="Allowed grant type. Repeatable.",
    )
    add_client.add_argument("--access-token-lifetime", type=int, default=3600)
    add_client.add_argument("--refresh-token-lifetime", type=int, default=1209600)
    add_client.add_argument(
        "--user-id", default=None, help="Owning user for client-credentials grants."
    )

    return parser


def resolve_database_url(database_url: Optional[str]) -> str:
    if database_url:
        return database_url
    # The issuer is irrelevant to these commands.
    return Settings(issuer="credutil").pg_dsn  # type: ignore


async def realMain(argv: Optional[List[str]] = None) -> None:
    args = vars(build_parser().parse_args(argv))
    command = args.get("command", None)

    if command == "gen-secret":
        await genSecret()
    elif command == "hash-password":
        await hashPassword(args["password"], args["rounds"])
    elif command == "init-db":
        await initDb(resolve_database_url(args.get("database_url")))
    elif command == "add-client":
        await addClient(
            resolve_database_url(args.get("database_url")),
            client_id=args["client_id"],
            client_secret=args.get("secret"),
            redirect_uris=args["redirect_uris"],
            grants=args["grants"] or ["authorization_code", "refresh_token"],
            access_token_lifetime=args["access_token_lifetime"],
            refresh_token_lifetime=args["refresh_token_lifetime"],
            domain=args["domain"],
            user_id=args.get("user_id"),
        )


def main() -> None:
    configure_logging()
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
