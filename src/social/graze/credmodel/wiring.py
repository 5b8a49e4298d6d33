import contextlib
import logging
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
import sentry_sdk

from social.graze.credmodel.config import Settings, load_options
from social.graze.credmodel.metrics import create_metrics_client
from social.graze.credmodel.model import CredentialModel
from social.graze.credmodel.password import BcryptPasswordHasher
from social.graze.credmodel.store import CredentialStore
from social.graze.credmodel.users import SQLAlchemyUserRepository, UserRepository

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def credential_model(
    settings: Optional[Settings] = None,
    user_model: Optional[UserRepository] = None,
) -> AsyncIterator[CredentialModel]:
    """
    Build a CredentialModel from settings and release its resources on exit.

    When no user repository is given, users are read from the `users` table in
    the same database as the credential store.
    """
    if settings is None:
        settings = Settings()  # type: ignore

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, send_default_pii=False)

    engine = create_async_engine(settings.pg_dsn, echo=settings.debug)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    metrics = await create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        debug=settings.debug,
    )

    if user_model is None:
        user_model = SQLAlchemyUserRepository(session_maker)

    try:
        model = CredentialModel(
            load_options({"issuer": settings.issuer, "user_model": user_model}),
            store=CredentialStore(session_maker),
            password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
            metrics=metrics,
        )
        logger.info("Credential model ready for issuer %s", settings.issuer)
        yield model
    finally:
        await metrics.close()
        await engine.dispose()
