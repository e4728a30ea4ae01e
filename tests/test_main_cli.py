
from main import _build_console_view, _parse_args
from userboard.actions import UserActions
from userboard.client import RemoteUserActions


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8000


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "0.0.0.0", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "0.0.0.0"
    assert args.port == 8080


def test_config_option_precedes_implicit_serve() -> None:
    args = _parse_args(["--config", "custom.yaml", "--port", "9000"])
    assert args.config == "custom.yaml"
    assert args.command == "serve"
    assert args.port == 9000


def test_admin_subcommand_accepts_service_url() -> None:
    args = _parse_args(["admin", "--service-url", "http://localhost:8000/api"])
    assert args.command == "admin"
    assert args.service_url == "http://localhost:8000/api"


def test_init_db_subcommand() -> None:
    args = _parse_args(["--config", "custom.yaml", "init-db"])
    assert args.command == "init-db"


def test_console_view_uses_remote_actions_when_service_url_given(database) -> None:
    remote_view = _build_console_view(database, "http://localhost:8000/api")
    local_view = _build_console_view(database, None)

    assert isinstance(remote_view._actions, RemoteUserActions)
    assert isinstance(local_view._actions, UserActions)


def test_config_option_with_equals_sign_precedes_implicit_serve() -> None:
    args = _parse_args(["--config=custom.yaml", "--port", "9000"])
    assert args.config == "custom.yaml"
    assert args.command == "serve"
    assert args.port == 9000
