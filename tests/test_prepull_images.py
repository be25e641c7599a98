import os
import subprocess

import pytest

from registry import prepull_images as pp

REGISTRIES = ["docker.io", "ghcr.io", "quay.io", "registry.k8s.io"]
CREDS = ("alice", "secret")


@pytest.mark.parametrize("ref, expected", [
    ("docker.io/calico/cni:v3.28.5", "calico/cni:v3.28.5"),
    ("registry.k8s.io/pause:3.9", "pause:3.9"),
    ("localhost:5000/team/app:1", "team/app:1"),
    ("calico/node:v3.28.5", "calico/node:v3.28.5"),
    ("nginx", "nginx"),
])
def test_strip_registry(ref, expected):
    assert pp.strip_registry(ref) == expected


def test_candidates_follow_registry_order():
    assert pp.candidate_refs("docker.io/metallb/controller:v0.13.12", REGISTRIES) == [
        ("docker.io", "docker.io/metallb/controller:v0.13.12"),
        ("ghcr.io", "ghcr.io/metallb/controller:v0.13.12"),
        ("quay.io", "quay.io/metallb/controller:v0.13.12"),
        ("registry.k8s.io", "registry.k8s.io/metallb/controller:v0.13.12"),
    ]


class Recorder:
    def __init__(self, pull_ok=(), fallback_ok=()):
        self.pull_ok = set(pull_ok)
        self.fallback_ok = set(fallback_ok)
        self.pulls = []
        self.fallbacks = []
        self.sleeps = []

    def pull(self, candidate, namespace, user=None, token=None):
        self.pulls.append((candidate, user, token))
        return candidate in self.pull_ok

    def fallback(self, candidate, namespace):
        self.fallbacks.append(candidate)
        return candidate in self.fallback_ok

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run(self, ref, docker_available=True):
        return pp.prepull_image(ref, REGISTRIES, "k8s.io", CREDS, docker_available, 1,
                                pull=self.pull, fallback=self.fallback, sleep=self.sleep)


def test_docker_io_pull_uses_credentials():
    rec = Recorder(pull_ok={"docker.io/calico/cni:v3.28.5"})
    assert rec.run("docker.io/calico/cni:v3.28.5") == "docker.io/calico/cni:v3.28.5"
    assert rec.pulls == [("docker.io/calico/cni:v3.28.5", "alice", "secret")]
    assert rec.fallbacks == []
    assert rec.sleeps == []


def test_docker_fallback_after_ctr_failure():
    rec = Recorder(fallback_ok={"docker.io/calico/node:v3.28.5"})
    assert rec.run("docker.io/calico/node:v3.28.5") == "docker.io/calico/node:v3.28.5"
    assert rec.fallbacks == ["docker.io/calico/node:v3.28.5"]


def test_other_registries_pulled_anonymously():
    rec = Recorder(pull_ok={"ghcr.io/metallb/controller:v0.13.12"})
    assert rec.run("docker.io/metallb/controller:v0.13.12") == "ghcr.io/metallb/controller:v0.13.12"
    assert rec.pulls[1] == ("ghcr.io/metallb/controller:v0.13.12", None, None)
    assert rec.sleeps == [1]


def test_image_fails_only_after_all_candidates():
    rec = Recorder()
    assert rec.run("docker.io/coredns/coredns:1.10.1", docker_available=False) is None
    assert [c for c, _, _ in rec.pulls] == [f"{r}/coredns/coredns:1.10.1" for r in REGISTRIES]
    assert rec.fallbacks == []
    assert rec.sleeps == [1, 1, 1]


def test_prepull_images_reports_every_image():
    rec = Recorder(pull_ok={"docker.io/calico/cni:v3.28.5"})
    results = pp.prepull_images(
        ["docker.io/calico/cni:v3.28.5", "docker.io/calico/node:v3.28.5"],
        REGISTRIES, "k8s.io", CREDS, docker_available=False, pause=0,
        pull=rec.pull, fallback=rec.fallback, sleep=rec.sleep,
    )
    assert results == {
        "docker.io/calico/cni:v3.28.5": "docker.io/calico/cni:v3.28.5",
        "docker.io/calico/node:v3.28.5": None,
    }


def test_split_tag_ignores_registry_port():
    assert pp.split_tag("localhost:5000/app") == ("localhost:5000/app", "latest")
    assert pp.split_tag("docker.io/calico/cni:v3.28.5") == ("docker.io/calico/cni", "v3.28.5")


def test_image_present():
    names = ["docker.io/calico/cni:v3.28.5", "docker.io/coredns/coredns:1.10.1"]
    assert pp.image_present("docker.io/calico/cni:v3.28.5", names)
    assert not pp.image_present("docker.io/metallb/controller:v0.13.12", names)


def test_validation_skipped_without_tools(monkeypatch):
    monkeypatch.setattr(pp.shutil, "which", lambda name: None)
    assert pp.validate_pulled_images(["docker.io/calico/cni:v3.28.5"], "k8s.io") == {}


FAKE_DOCKER = """#!/bin/sh
echo "docker $*" >> "$FAKE_LOG"
case "$1" in
  pull) exit "${DOCKER_PULL_RC:-0}" ;;
  save) echo "image-archive"; exit "${DOCKER_SAVE_RC:-0}" ;;
esac
"""

FAKE_CTR = """#!/bin/sh
echo "ctr $*" >> "$FAKE_LOG"
cat > "$IMPORTED"
exit "${CTR_IMPORT_RC:-0}"
"""


@pytest.fixture
def fake_tools(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name, body in (("docker", FAKE_DOCKER), ("ctr", FAKE_CTR)):
        script = bin_dir / name
        script.write_text(body)
        script.chmod(0o755)
    log_path = tmp_path / "calls.log"
    imported = tmp_path / "imported.tar"
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("FAKE_LOG", str(log_path))
    monkeypatch.setenv("IMPORTED", str(imported))
    return log_path, imported


def test_docker_save_piped_into_ctr_import(fake_tools):
    log_path, imported = fake_tools
    assert pp.docker_pull_and_import("docker.io/calico/node:v3.28.5", "k8s.io") is True
    calls = log_path.read_text().splitlines()
    assert calls[0] == "docker pull docker.io/calico/node:v3.28.5"
    # save и import работают одновременно, порядок их строк не определён
    assert sorted(calls[1:]) == ["ctr -n k8s.io images import -", "docker save docker.io/calico/node:v3.28.5"]
    assert imported.read_text() == "image-archive\n"


def test_failed_docker_pull_skips_import(fake_tools, monkeypatch):
    log_path, imported = fake_tools
    monkeypatch.setenv("DOCKER_PULL_RC", "1")
    assert pp.docker_pull_and_import("docker.io/calico/node:v3.28.5", "k8s.io") is False
    assert log_path.read_text().splitlines() == ["docker pull docker.io/calico/node:v3.28.5"]
    assert not imported.exists()


@pytest.mark.parametrize("failing", ["DOCKER_SAVE_RC", "CTR_IMPORT_RC"])
def test_failed_save_or_import_reported(fake_tools, monkeypatch, failing):
    monkeypatch.setenv(failing, "1")
    assert pp.docker_pull_and_import("docker.io/calico/node:v3.28.5", "k8s.io") is False


CRICTL_IMAGES = """\
IMAGE                                TAG       IMAGE ID        SIZE
docker.io/calico/cni                 v3.28.5   1a2b3c4d5e6f    94.5MB
registry.k8s.io/pause                3.9       e6f181688397    322kB
"""


def test_crictl_used_when_ctr_missing(monkeypatch):
    monkeypatch.setattr(pp.shutil, "which", lambda name: "/usr/bin/crictl" if name == "crictl" else None)
    monkeypatch.setattr(pp.subprocess, "run",
                        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, CRICTL_IMAGES, ""))
    tool, names = pp.listed_images("k8s.io")
    assert tool == "crictl"
    assert names == ["docker.io/calico/cni:v3.28.5", "registry.k8s.io/pause:3.9"]


def test_main_validates_with_crictl_without_ctr(monkeypatch, settings):
    settings["prepull"]["images"] = ["docker.io/calico/cni:v3.28.5", "docker.io/calico/node:v3.28.5"]
    commands = []

    def fake_run(cmd, **kw):
        commands.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, CRICTL_IMAGES, "")

    def no_prepull(*args, **kwargs):
        raise AssertionError("nothing can be pulled without ctr")

    monkeypatch.setattr(pp, "load_settings", lambda: settings)
    monkeypatch.setattr(pp.shutil, "which", lambda name: "/usr/bin/crictl" if name == "crictl" else None)
    monkeypatch.setattr(pp.subprocess, "run", fake_run)
    monkeypatch.setattr(pp, "prepull_images", no_prepull)

    pp.main()

    assert commands == [["crictl", "images"]]
    assert pp.validate_pulled_images(settings["prepull"]["images"], "k8s.io") == {
        "docker.io/calico/cni:v3.28.5": True,
        "docker.io/calico/node:v3.28.5": False,
    }
