import pytest

from registry import registry_login


def options(**extra):
    base = {"docker_user": "alice", "docker_token": "secret",
            "ghcr_user": "", "ghcr_token": "", "quay_user": "", "quay_token": ""}
    base.update(extra)
    return base


def test_docker_hub_failure_is_fatal(monkeypatch):
    monkeypatch.setattr(registry_login, "docker_login", lambda user, token, registry=None: False)
    with pytest.raises(SystemExit) as exc:
        registry_login.login_all(options())
    assert exc.value.code == 1


def test_optional_registry_failure_is_warning(monkeypatch):
    calls = []

    def fake_login(user, token, registry=None):
        calls.append(registry)
        return registry is None

    monkeypatch.setattr(registry_login, "docker_login", fake_login)
    registry_login.login_all(options(ghcr_user="bob", ghcr_token="ghp", quay_user="carol"))
    # Quay пропущен: нет токена
    assert calls == [None, "ghcr.io"]
