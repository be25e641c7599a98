import subprocess

import pytest

from post import untaint_node as untaint
from post import restart_calico
from cluster import check_cluster_health as health

TAINTED = {"spec": {"taints": [{"key": "node-role.kubernetes.io/control-plane", "effect": "NoSchedule"}]}}


def completed(cmd, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


def test_untaint_skipped_without_taint(monkeypatch):
    calls = []
    monkeypatch.setattr(untaint, "get_node", lambda name: {"spec": {}})
    monkeypatch.setattr(untaint.subprocess, "run", lambda cmd, **kw: calls.append(cmd))
    untaint.untaint_node("cp-1")
    assert calls == []


def test_untaint_removes_taint(monkeypatch):
    calls = []

    def fake_run(cmd, **kw):
        calls.append(cmd)
        return completed(cmd)

    monkeypatch.setattr(untaint, "get_node", lambda name: TAINTED)
    monkeypatch.setattr(untaint.subprocess, "run", fake_run)
    untaint.untaint_node("cp-1")
    assert calls == [["kubectl", "taint", "nodes", "cp-1", "node-role.kubernetes.io/control-plane:NoSchedule-"]]


def test_failed_untaint_exits(monkeypatch):
    monkeypatch.setattr(untaint, "get_node", lambda name: TAINTED)
    monkeypatch.setattr(untaint.subprocess, "run", lambda cmd, **kw: completed(cmd, 1, stderr="forbidden"))
    with pytest.raises(SystemExit) as exc:
        untaint.untaint_node("cp-1")
    assert exc.value.code == 1


@pytest.mark.parametrize("result, healthy", [
    (completed([], 0, "ok\n"), True),
    (completed([], 0, "[-]etcd failed\n"), False),
    (completed([], 1, "", "connection refused"), False),
])
def test_check_health(monkeypatch, result, healthy):
    monkeypatch.setattr(health, "kubectl", lambda *args, check=True: result)
    assert health.check_health() is healthy


def test_unhealthy_apiserver_is_fatal(monkeypatch):
    monkeypatch.setattr(health, "use_admin_kubeconfig", lambda: None)
    monkeypatch.setattr(health, "check_health", lambda: False)
    monkeypatch.setattr(health, "check_node_ready", lambda: True)
    monkeypatch.setattr(health.subprocess, "run", lambda cmd, **kw: completed(cmd))
    with pytest.raises(SystemExit) as exc:
        health.main()
    assert exc.value.code == 1


def test_unready_node_is_only_reported(monkeypatch):
    monkeypatch.setattr(health, "use_admin_kubeconfig", lambda: None)
    monkeypatch.setattr(health, "check_health", lambda: True)
    monkeypatch.setattr(health, "check_node_ready", lambda: False)
    monkeypatch.setattr(health.subprocess, "run", lambda cmd, **kw: completed(cmd))
    health.main()


def calico_step(monkeypatch, settings, events, restart):
    settings["waits"]["calico_interval_seconds"] = 0
    polls = iter([
        [("calico-node-abcde", "Init:0/3")],
        [("calico-node-abcde", "Running"), ("calico-kube-controllers-x", "Running")],
    ])

    def fake_statuses(namespace):
        events.append(("poll", namespace))
        return next(polls)

    def fake_run(cmd, **kw):
        events.append(("run", cmd))
        return restart(cmd)

    monkeypatch.setattr(restart_calico, "use_admin_kubeconfig", lambda: None)
    monkeypatch.setattr(restart_calico, "load_settings", lambda: settings)
    monkeypatch.setattr(restart_calico, "pod_statuses", fake_statuses)
    monkeypatch.setattr(restart_calico.subprocess, "run", fake_run)


def test_calico_restarted_before_wait(monkeypatch, settings):
    events = []
    calico_step(monkeypatch, settings, events, lambda cmd: completed(cmd))

    restart_calico.main()

    assert events[0] == ("run", ["kubectl", "rollout", "restart", "daemonset", "calico-node", "-n", "kube-system"])
    assert events[1:] == [("poll", "kube-system"), ("poll", "kube-system")]


def test_failed_calico_restart_exits(monkeypatch, settings):
    events = []

    def fail(cmd):
        raise subprocess.CalledProcessError(1, cmd)

    calico_step(monkeypatch, settings, events, fail)
    with pytest.raises(SystemExit) as exc:
        restart_calico.main()
    assert exc.value.code == 1
    assert all(kind == "run" for kind, _ in events)
