"""
tests/test_cli.py -- Tests for the account administration CLI (main.py).

The commands are plain functions over a UserStore, so most tests call them
directly with the in-memory store fixture. main() is exercised with UserStore
patched to return that same store.
"""

from __future__ import annotations

import pytest

import main as cli
from auth.errors import DuplicateEmail
from auth.models import ADMINISTRATOR, FLEET_OPERATOR
from auth.passwords import verify_password
from auth.store import UserStore
from auth.validation import FieldError


class TestSeed:
    def test_creates_demo_accounts(self, store: UserStore, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.seed(store) == 4
        admin = store.find_by_email("admin@barnacle.com")
        assert admin is not None
        assert admin.role == ADMINISTRATOR
        assert verify_password("admin123", admin.hashed_password)
        assert "4 account(s) created, 0 skipped" in capsys.readouterr().out

    def test_idempotent(self, store: UserStore, capsys: pytest.CaptureFixture[str]) -> None:
        cli.seed(store)
        assert cli.seed(store) == 0
        assert len(store.list_users()) == 4
        assert "0 account(s) created, 4 skipped" in capsys.readouterr().out


class TestCreateUser:
    def test_any_role_allowed(self, store: UserStore) -> None:
        user = cli.create_user(store, "Ann@Fleet.io", "Ann Lee", ADMINISTRATOR, password="Harbor7!x")
        assert user.email == "ann@fleet.io"
        assert user.role == ADMINISTRATOR

    def test_password_rules_applied(self, store: UserStore) -> None:
        with pytest.raises(FieldError, match="Please choose a stronger password"):
            cli.create_user(store, "ann@fleet.io", "Ann Lee", FLEET_OPERATOR, password="password")

    def test_prompts_for_password(self, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        answers = iter(["Harbor7!x", "Harbor7!x"])
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))
        user = cli.create_user(store, "ann@fleet.io", "Ann Lee", FLEET_OPERATOR)
        assert verify_password("Harbor7!x", user.hashed_password)

    def test_prompt_mismatch(self, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        answers = iter(["Harbor7!x", "Harbor7!y"])
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))
        with pytest.raises(FieldError, match="Passwords do not match"):
            cli.create_user(store, "ann@fleet.io", "Ann Lee", FLEET_OPERATOR)

    def test_duplicate(self, store: UserStore) -> None:
        cli.create_user(store, "ann@fleet.io", "Ann Lee", FLEET_OPERATOR, password="Harbor7!x")
        with pytest.raises(DuplicateEmail):
            cli.create_user(store, "ANN@fleet.io", "Ann Lee", FLEET_OPERATOR, password="Harbor7!x")


class TestDeactivate:
    def test_deactivates(self, store: UserStore) -> None:
        cli.seed(store)
        assert cli.deactivate(store, "demo@barnacle.com") is True
        assert store.find_by_email("demo@barnacle.com").is_active is False

    def test_unknown(self, store: UserStore) -> None:
        assert cli.deactivate(store, "nobody@barnacle.com") is False


class TestMain:
    @pytest.fixture(autouse=True)
    def _patch_store(self, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        # main() closes its store on exit; disposing the engine would drop the
        # shared in-memory database between two main() calls.
        monkeypatch.setattr(store, "close", lambda: None)
        monkeypatch.setattr(cli, "UserStore", lambda: store)

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main([]) == 0
        assert "usage:" in capsys.readouterr().out

    def test_seed_then_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["seed"]) == 0
        assert cli.main(["list-users"]) == 0
        out = capsys.readouterr().out
        assert "captain@barnacle.com" in out
        assert "Ship Captain" in out

    def test_create_user_invalid_email(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = cli.main(["create-user", "--email", "bad", "--name", "Ann Lee", "--password", "Harbor7!x"])
        assert code == 1
        assert "Email must be at least 5 characters long" in capsys.readouterr().out

    def test_create_user_duplicate(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = ["create-user", "--email", "ann@fleet.io", "--name", "Ann Lee", "--password", "Harbor7!x"]
        assert cli.main(args) == 0
        assert cli.main(args) == 1
        assert "already exists" in capsys.readouterr().out

    def test_deactivate_unknown(self) -> None:
        assert cli.main(["deactivate", "--email", "nobody@barnacle.com"]) == 1

    def test_rejects_unknown_role(self) -> None:
        with pytest.raises(SystemExit):
            cli.main(["create-user", "--email", "ann@fleet.io", "--name", "Ann Lee", "--role", "Pirate"])
