import importlib.util
from pathlib import Path

import pytest

from kgoc.services import roles, users


SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def reset_script():
    return _load_script("reset_first_user")


def test_reset_first_user_makes_next_user_admin(remote, local, reset_script, capsys):
    assert users.create_user(remote, local, "first", "first@kgoc.com").data["role"] == "admin"
    assert users.create_user(remote, local, "second", "second@kgoc.com").data["role"] == "operator"
    assert not roles.check_if_first_user(remote, local)

    removed = reset_script.reset_first_user(remote=remote, local=local)

    assert removed["users"] == 2
    assert roles.check_if_first_user(remote, local)
    assert remote.query(roles.USERS_COLLECTION) == []
    assert remote.get(roles.SYSTEM_CONFIG_COLLECTION, roles.FIRST_USER_DOC_ID) is None
    assert roles.initialize_user_role(remote, local, "next", "next@kgoc.com").role == "admin"
    assert "next user to initialize" in capsys.readouterr().out


def test_reset_first_user_dry_run_keeps_everything(remote, local, reset_script):
    users.create_user(remote, local, "first", "first@kgoc.com")

    assert reset_script.reset_first_user(dry_run=True, remote=remote, local=local) is None

    assert not roles.check_if_first_user(remote, local)
    assert remote.get(roles.USERS_COLLECTION, "first") is not None
