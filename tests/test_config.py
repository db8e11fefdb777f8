"""
Unit tests for settings resolution.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pathlib import Path

import pytest

from resource_server.app.config import DEFAULT_TRUST_URL, load_settings
from resource_server.app.errors import ConfigError

_ENV = ("RS_USER", "RS_TRUST_URL", "RS_IDENTITY", "RS_PORT", "RS_HOST", "RS_ROOT",
        "RS_CURVE", "RS_TRUST_TIMEOUT", "RS_MAX_SKEW_SECONDS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings(user="alice")
    assert settings.port == 3002
    assert settings.identity == "localhost~3002"
    assert settings.trust_url == DEFAULT_TRUST_URL
    assert settings.curve == "secp256k1"
    assert settings.max_skew_seconds is None
    assert settings.root == Path(os.getcwd()).resolve()


def test_identity_follows_port():
    assert load_settings(user="alice", port=4000).identity == "localhost~4000"


def test_user_required():
    with pytest.raises(ConfigError, match="-u <username>"):
        load_settings()


def test_env_values(monkeypatch, tmp_path):
    monkeypatch.setenv("RS_USER", "bob")
    monkeypatch.setenv("RS_PORT", "9000")
    monkeypatch.setenv("RS_ROOT", str(tmp_path))
    monkeypatch.setenv("RS_MAX_SKEW_SECONDS", "60")
    settings = load_settings()
    assert settings.user == "bob"
    assert settings.port == 9000
    assert settings.root == tmp_path.resolve()
    assert settings.max_skew_seconds == 60.0


def test_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("RS_USER", "bob")
    assert load_settings(user="carol").user == "carol"


def test_commas_rejected_in_payload_fields():
    with pytest.raises(ConfigError):
        load_settings(user="a,b")
    with pytest.raises(ConfigError):
        load_settings(user="alice", identity="host,1")


def test_unknown_curve_rejected():
    with pytest.raises(ConfigError):
        load_settings(user="alice", curve="ed25519")


def test_bad_port_rejected(monkeypatch):
    monkeypatch.setenv("RS_PORT", "http")
    with pytest.raises(ConfigError):
        load_settings(user="alice")
