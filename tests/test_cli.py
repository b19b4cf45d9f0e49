"""
Tests for the command-line interface.
"""
import json
from pathlib import Path
from tempfile import TemporaryDirectory

import httpx
import pytest

from auto_organizer import cli
from auto_organizer.api_client import OrganizeApiClient
from auto_organizer.config import AppConfig, ConfigStore
from auto_organizer.models import OrganizeOptions

API_URL = "http://organizer.test"


def run_cli(*argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(list(argv))
    return exc_info.value.code


def test_no_command_prints_help(capsys):
    """Test the bare invocation."""
    with TemporaryDirectory() as tmpdir:
        assert run_cli("--config", str(Path(tmpdir) / "c.json")) == 1
    assert "organize" in capsys.readouterr().out


def test_config_set_and_show(capsys):
    """Test editing settings and hiding secrets."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "c.json"
        ConfigStore(path).store_tokens("secret-token")

        assert run_cli("--config", str(path), "config", "--set", "max_files=100") == 0
        assert run_cli("--config", str(path), "config", "--set", "api_url=https://svc.example.com/") == 0
        assert ConfigStore(path).config.max_files == 100
        assert ConfigStore(path).config.api_url == "https://svc.example.com"

        capsys.readouterr()
        assert run_cli("--config", str(path), "config") == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["access_token"] == "***"


def test_config_rejects_unknown_and_invalid(capsys):
    """Test bad settings."""
    with TemporaryDirectory() as tmpdir:
        path = str(Path(tmpdir) / "c.json")
        assert run_cli("--config", path, "config", "--set", "colour=blue") == 1
        assert run_cli("--config", path, "config", "--set", "max_files=0") == 1


def test_logout_clears_tokens():
    """Test logout."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "c.json"
        ConfigStore(path).store_tokens("acc", "ref")

        assert run_cli("--config", str(path), "logout") == 0
        assert ConfigStore(path).get_access_token() is None


def test_organize_without_login_fails(capsys):
    """Test that organize stops before any network call without a token."""
    with TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.txt").write_text("x")

        assert run_cli("--config", str(root / "c.json"), "organize", str(root)) == 1
        assert "Authentication required" in capsys.readouterr().out
        assert (root / "a.txt").exists()


def test_history_without_login(capsys):
    """Test history when logged out."""
    with TemporaryDirectory() as tmpdir:
        assert run_cli("--config", str(Path(tmpdir) / "c.json"), "history") == 1
    assert "Not logged in" in capsys.readouterr().out


def test_config_show_flag(capsys):
    """Test the explicit --show switch."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "c.json"
        ConfigStore(path).store_tokens("acc", "ref")

        assert run_cli("--config", str(path), "config", "--show") == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["refresh_token"] == "***"
        assert shown["max_files"] == 5000


def test_build_options_keeps_stored_defaults():
    """Test that switches not given on the command line keep the config defaults."""
    config = AppConfig(default_options=OrganizeOptions(
        use_existing_folders=False,
        use_gemini_naming=False,
        use_content_extraction=True,
        custom_prompt="by year",
    ))
    args = cli.build_parser().parse_args(["organize", "/tmp/in"])

    assert cli.build_options(config, args) == config.default_options


def test_build_options_flags_override():
    """Test explicit on/off switches."""
    config = AppConfig(default_options=OrganizeOptions(use_content_extraction=True))
    args = cli.build_parser().parse_args([
        "organize", "/tmp/in", "--no-content", "--no-existing", "--ai-full", "--prompt", "by client",
    ])

    options = cli.build_options(config, args)

    assert options.use_content_extraction is False
    assert options.use_existing_folders is False
    assert options.use_gemini_full is True
    assert options.use_gemini_naming is True
    assert options.custom_prompt == "by client"


@pytest.mark.asyncio
async def test_refresh_access_token():
    """Test that a stored refresh token renews the access token."""
    def handler(request):
        assert request.url.path == "/api/auth/refresh"
        assert json.loads(request.content) == {"refresh_token": "ref"}
        return httpx.Response(200, json={"access_token": "new"})

    with TemporaryDirectory() as tmpdir:
        store = ConfigStore(Path(tmpdir) / "c.json")
        store.store_tokens("old", "ref")

        async with OrganizeApiClient(API_URL, transport=httpx.MockTransport(handler)) as api:
            assert await cli.refresh_access_token(store, api) is True

        reloaded = ConfigStore(Path(tmpdir) / "c.json")
        assert reloaded.get_access_token() == "new"
        assert reloaded.config.refresh_token == "ref"


@pytest.mark.asyncio
async def test_refresh_access_token_failures():
    """Test a missing or rejected refresh token."""
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(401)

    with TemporaryDirectory() as tmpdir:
        store = ConfigStore(Path(tmpdir) / "c.json")
        async with OrganizeApiClient(API_URL, transport=httpx.MockTransport(handler)) as api:
            assert await cli.refresh_access_token(store, api) is False
            assert calls == []

            store.store_tokens("old", "ref")
            assert await cli.refresh_access_token(store, api) is False

        assert calls == ["/api/auth/refresh"]
        assert store.get_access_token() == "old"
