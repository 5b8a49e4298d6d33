"""
Tests for the credutil CLI and the settings-driven wiring.
"""

import pytest

from social.graze.credmodel.config import Settings
from social.graze.credmodel.model import CredentialModel
from social.graze.credmodel.password import BcryptPasswordHasher
from social.graze.credmodel.store import CredentialStore
from social.graze.credmodel.util.__main__ import build_parser, realMain
from social.graze.credmodel.wiring import credential_model
from sqlalchemy.ext.asyncio import create_async_engine


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'credutil.db'}"


class TestParser:
    def test_add_client_defaults(self):
        args = vars(build_parser().parse_args(["add-client", "web", "api.example.test"]))
        assert args["client_id"] == "web"
        assert args["domain"] == "api.example.test"
        assert args["secret"] is None
        assert args["grants"] is None
        assert args["access_token_lifetime"] == 3600

    def test_repeatable_options(self):
        args = vars(
            build_parser().parse_args(
                [
                    "add-client",
                    "web",
                    "api.example.test",
                    "--redirect-uri",
                    "https://a.example.test/cb",
                    "--redirect-uri",
                    "https://b.example.test/cb",
                    "--grant",
                    "client_credentials",
                ]
            )
        )
        assert args["redirect_uris"] == [
            "https://a.example.test/cb",
            "https://b.example.test/cb",
        ]
        assert args["grants"] == ["client_credentials"]

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    async def test_init_db_and_add_client(self, database_url, capsys):
        await realMain(["--database-url", database_url, "init-db"])
        await realMain(
            [
                "--database-url",
                database_url,
                "add-client",
                "web",
                "api.example.test",
                "--secret",
                "topsecret",
                "--redirect-uri",
                "https://app.example.test/cb",
            ]
        )
        assert "web created with secret: topsecret" in capsys.readouterr().out

        engine = create_async_engine(database_url)
        try:
            row = await CredentialStore.from_engine(engine).find_client("web")
        finally:
            await engine.dispose()

        assert row is not None
        assert row.client_secret == "topsecret"
        assert row.grants == ["authorization_code", "refresh_token"]
        assert row.redirect_uris == ["https://app.example.test/cb"]

    async def test_gen_secret(self, capsys):
        await realMain(["gen-secret"])
        assert len(capsys.readouterr().out.strip()) >= 48

    async def test_hash_password(self, capsys):
        await realMain(["hash-password", "hunter2", "--rounds", "4"])
        hashed = capsys.readouterr().out.strip()
        assert BcryptPasswordHasher().verify("hunter2", hashed)


class TestWiring:
    async def test_credential_model_from_settings(self, database_url):
        settings = Settings(issuer="https://auth.example.test", pg_dsn=database_url)  # type: ignore

        async with credential_model(settings) as model:
            assert isinstance(model, CredentialModel)
            assert model.issuer == "https://auth.example.test"

            await model.store.create_all()
            assert await model.get_user("nobody@example.test", "pw") is None
