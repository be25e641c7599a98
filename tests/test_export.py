import base64
import os

import yaml

from cluster import export_kubeconfig as ek
from certs import export_certs

FAKE_PEM = b"-----BEGIN CERTIFICATE-----\nMIIBfake\n-----END CERTIFICATE-----\n"


def admin_conf(server="https://k8s.lab.local:6443", ca=True, client=True):
    cluster = {"server": server}
    if ca:
        cluster["certificate-authority-data"] = base64.b64encode(FAKE_PEM).decode()
    user = {"client-key-data": "a2V5"}
    if client:
        user["client-certificate-data"] = base64.b64encode(FAKE_PEM).decode()
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": "kubernetes", "cluster": cluster}],
        "users": [{"name": "kubernetes-admin", "user": user}],
    }


def test_host_port():
    assert ek.host_port("myk8s.dapdemo.lab") == "myk8s.dapdemo.lab:6443"
    assert ek.host_port("10.0.0.5:8443") == "10.0.0.5:8443"


def test_rewrite_server_keeps_scheme():
    config = ek.rewrite_server(admin_conf("https://10.0.0.5:6443"), "api.example:6443")
    assert config["clusters"][0]["cluster"]["server"] == "https://api.example:6443"


def test_api_endpoint_from_kubeconfig():
    assert ek.api_endpoint(admin_conf("https://10.0.0.5:6443")) == "10.0.0.5:6443"


def test_api_endpoint_fallbacks(monkeypatch):
    monkeypatch.setattr(ek, "get_ip", lambda: "192.168.0.10")
    assert ek.api_endpoint(None) == "192.168.0.10:6443"
    monkeypatch.setattr(ek, "get_ip", lambda: None)
    assert ek.api_endpoint({"clusters": []}) == "<node-ip>:6443"


def test_export_kubeconfig(tmp_path):
    src = tmp_path / "admin.conf"
    src.write_text(yaml.safe_dump(admin_conf()))
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    exported = ek.export_kubeconfig(str(src), str(out_dir), "myk8s.dapdemo.lab")

    assert [p.name for p in exported] == ["kubeconfig", "kubeconfig.config"]
    for path in exported:
        assert os.stat(path).st_mode & 0o777 == 0o666
        data = yaml.safe_load(path.read_text())
        assert data["clusters"][0]["cluster"]["server"] == "https://myk8s.dapdemo.lab:6443"
    # admin.conf остаётся нетронутым
    assert yaml.safe_load(src.read_text())["clusters"][0]["cluster"]["server"] == "https://k8s.lab.local:6443"


def test_export_certs_without_openssl(tmp_path, monkeypatch):
    monkeypatch.setattr(export_certs.shutil, "which", lambda name: None)
    conf = tmp_path / "admin.conf"
    conf.write_text(yaml.safe_dump(admin_conf()))

    exported = export_certs.export_all(str(conf), str(tmp_path))

    assert exported == [str(tmp_path / "ca.crt.pem"), str(tmp_path / "client.crt.pem")]
    assert (tmp_path / "ca.crt.pem").read_bytes() == FAKE_PEM
    assert not (tmp_path / "ca.crt.der").exists()


def test_export_certs_missing_and_invalid_fields(tmp_path, monkeypatch):
    monkeypatch.setattr(export_certs.shutil, "which", lambda name: None)
    config = admin_conf(client=False)
    config["clusters"][0]["cluster"]["certificate-authority-data"] = "!!!"
    conf = tmp_path / "admin.conf"
    conf.write_text(yaml.safe_dump(config))

    assert export_certs.export_all(str(conf), str(tmp_path)) == []
