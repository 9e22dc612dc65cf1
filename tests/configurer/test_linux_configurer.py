import pytest

from conftest import FakeConnection, host_spec
from fleetup.configurer.linux import Configurer, normalize_arch, select_private_address
from fleetup.configurer.paths import DEFAULT_PATHS
from fleetup.errors import PrimitiveFailure, UpsertConflict, VersionMismatch
from fleetup.utils.version import BinaryVersion


def _host(make_cluster, conn=None, **kw):
    cluster = make_cluster([host_spec("10.0.0.1", **kw)], connections=[conn or FakeConnection()])
    return cluster.hosts[0]


# ----------------- architecture -----------------

@pytest.mark.parametrize("raw, want", [
    ("x86_64", "amd64"),
    ("aarch64", "arm64"),
    ("armv7l", "arm"),
    ("armv8l", "arm"),
    ("aarch32", "arm"),
    ("arm32", "arm"),
    ("armhfp", "arm"),
    ("arm-32", "arm"),
    ("riscv64", "riscv64"),
    ("s390x", "s390x"),
])
def test_normalize_arch(raw, want):
    assert normalize_arch(raw) == want


def test_arch_runs_uname(make_cluster):
    conn = FakeConnection(responses={("uname", "-m"): "aarch64\n"})
    h = _host(make_cluster, conn)
    assert h.configurer.arch(h) == "arm64"


# ----------------- upsert -----------------

def test_upsert_creates_then_conflicts_without_overwriting(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)
    c = h.configurer

    c.upsert_file(h, "/etc/k0s/thing", "A")
    assert conn.files["/etc/k0s/thing"] == "A"

    with pytest.raises(UpsertConflict) as ei:
        c.upsert_file(h, "/etc/k0s/thing", "B")

    assert ei.value.path == "/etc/k0s/thing"
    assert conn.files["/etc/k0s/thing"] == "A"
    # both temp files are gone
    assert not [p for p in conn.files if p.startswith("/tmp/tmp.")]


def test_upsert_uses_no_clobber_rename(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)
    h.configurer.upsert_file(h, "/run/lock/fleetup", "token")

    mv = [c for c in conn.log if c.argv[0] == "mv"][0]
    assert mv.argv == ("mv", "-n", "/tmp/tmp.1", "/run/lock/fleetup")
    assert mv.sudo
    write = [c for c in conn.log if c.redirect_to == "/tmp/tmp.1"][0]
    assert write.stdin == "token"


def test_upsert_removes_temp_file_when_write_fails(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)

    def boom(command, *, timeout=None, _orig=conn.exec):
        if command.redirect_to:
            conn.log.append(command)
            raise PrimitiveFailure("disk full")
        return _orig(command, timeout=timeout)

    conn.exec = boom
    with pytest.raises(PrimitiveFailure):
        h.configurer.upsert_file(h, "/etc/x", "A")
    assert conn.ran("rm", "-f", "/tmp/tmp.1")
    assert "/etc/x" not in conn.files


# ----------------- network -----------------

def test_select_private_address_skips_public():
    out = (
        "2: eth0    inet 198.51.100.5/24 brd 198.51.100.255 scope global eth0\n"
        "2: eth0    inet 203.0.113.9/24 brd 203.0.113.255 scope global eth0\n"
    )
    assert select_private_address(out, "198.51.100.5") == "203.0.113.9"


def test_select_private_address_not_found():
    out = "2: eth0    inet 198.51.100.5/24 brd 198.51.100.255 scope global eth0\n"
    with pytest.raises(PrimitiveFailure, match="not found"):
        select_private_address(out, "198.51.100.5")


def test_select_private_address_ignores_malformed_and_handles_slash32():
    out = "garbage\n3: wg0 inet fe80::1/64\n4: lo0    inet 10.1.2.3 scope global lo0\n"
    assert select_private_address(out, "198.51.100.5") == "10.1.2.3"


def test_private_interface_prefers_private_route(make_cluster):
    conn = FakeConnection(responses={
        ("ip", "route", "list", "scope", "global"):
            "default via 198.51.100.1 dev eth0\n10.0.0.0/24 dev eth1 proto kernel\n",
        ("ip", "route", "list"): "default via 198.51.100.1 dev eth0\n",
    })
    h = _host(make_cluster, conn)
    assert h.configurer.private_interface(h) == "eth1"
    ip = [c for c in conn.log if c.argv[0] == "ip"][0]
    assert "sbin" in ip.env["PATH"]


def test_private_interface_falls_back_to_default_route(make_cluster):
    conn = FakeConnection(responses={
        ("ip", "route", "list", "scope", "global"): "",
        ("ip", "route", "list"): "default via 198.51.100.1 dev ens3 proto dhcp\n",
    })
    h = _host(make_cluster, conn)
    assert h.configurer.private_interface(h) == "ens3"


def test_private_interface_failure_asks_for_manual_config(make_cluster):
    conn = FakeConnection(responses={
        ("ip", "route", "list", "scope", "global"): "",
        ("ip", "route", "list"): "",
    })
    h = _host(make_cluster, conn)
    with pytest.raises(PrimitiveFailure, match="privateInterface manually"):
        h.configurer.private_interface(h)


def test_private_address_through_host(make_cluster):
    conn = FakeConnection(responses={
        ("ip", "-o", "addr", "show", "dev", "eth1", "scope", "global"):
            "3: eth1 inet 198.51.100.5/24 scope global eth1\n3: eth1 inet 203.0.113.9/24 scope global eth1\n",
    })
    h = _host(make_cluster, conn)
    assert h.configurer.private_address(h, "eth1", "198.51.100.5") == "203.0.113.9"


# ----------------- versions / http -----------------

def test_binary_version_parses_output(make_cluster):
    conn = FakeConnection(responses={("/usr/local/bin/k0s", "version"): "v1.29.2+k0s.0\n"})
    h = _host(make_cluster, conn)
    v = h.configurer.binary_version(h)
    assert str(v) == "v1.29.2+k0s.0"
    assert v == BinaryVersion.parse("1.29.2+k0s.0")


def test_binary_version_unparsable_is_primitive_failure(make_cluster):
    conn = FakeConnection(responses={("/usr/local/bin/k0s", "version"): "command not found"})
    h = _host(make_cluster, conn)
    with pytest.raises(PrimitiveFailure, match="unparsable"):
        h.configurer.binary_version(h)


def test_verify_version_mismatch_names_both():
    with pytest.raises(VersionMismatch) as ei:
        Configurer.verify_version(BinaryVersion.parse("v1.29.1"), "v1.29.2")
    assert "v1.29.1" in str(ei.value) and "v1.29.2" in str(ei.value)
    Configurer.verify_version(BinaryVersion.parse("v1.29.2"), "v1.29.2")


def test_http_status(make_cluster):
    url = "https://localhost:6443/healthz"
    conn = FakeConnection(responses={("curl", "-kso", "/dev/null", "-w", "%{http_code}", url): "200"})
    h = _host(make_cluster, conn)
    assert h.configurer.http_status(h, url) == 200


def test_http_status_invalid_body(make_cluster):
    url = "https://localhost:6443/healthz"
    conn = FakeConnection(responses={("curl", "-kso", "/dev/null", "-w", "%{http_code}", url): "<html>"})
    h = _host(make_cluster, conn)
    with pytest.raises(PrimitiveFailure, match="invalid response"):
        h.configurer.http_status(h, url)


# ----------------- paths -----------------

def test_kubeconfig_prefers_admin_conf(make_cluster):
    h = _host(make_cluster, FakeConnection(files={DEFAULT_PATHS.admin_kubeconfig_path: "x"}))
    assert h.configurer.kubeconfig_path(h) == "/var/lib/k0s/pki/admin.conf"

    h = _host(make_cluster, FakeConnection())
    assert h.configurer.kubeconfig_path(h) == "/var/lib/k0s/kubelet.conf"


def test_kubectl_command_sets_kubeconfig(make_cluster):
    h = _host(make_cluster, FakeConnection())
    c = h.configurer.kubectl_command(h, "get", "nodes")
    assert c.argv == ("/usr/local/bin/k0s", "kubectl", "get", "nodes")
    assert c.env == {"KUBECONFIG": "/var/lib/k0s/kubelet.conf"}


def test_lock_file_path_depends_on_run_lock(make_cluster):
    h = _host(make_cluster, FakeConnection(dirs={"/run/lock"}))
    assert h.configurer.lock_file_path(h) == "/run/lock/fleetup"
    h = _host(make_cluster, FakeConnection())
    assert h.configurer.lock_file_path(h) == "/tmp/fleetup.lock"


# ----------------- install / change detection -----------------

def test_install_binary_removes_temp_file_on_failure(make_cluster):
    url = "https://example.test/k0s"
    conn = FakeConnection(responses={
        ("curl", "-sSLf", "-o", "/tmp/tmp.1", url): PrimitiveFailure("404"),
    })
    h = _host(make_cluster, conn)
    with pytest.raises(PrimitiveFailure):
        h.configurer.install_binary(h, url)
    assert conn.ran("rm", "-f", "/tmp/tmp.1")
    assert not any(a[0] == "install" for a in conn.argvs())


def test_download_binary_installs_with_owner_and_mode(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)
    h.configurer.download_binary(h, "v1.29.2+k0s.0", "amd64")

    argvs = conn.argvs()
    url = "https://github.com/k0sproject/k0s/releases/download/v1.29.2+k0s.0/k0s-v1.29.2+k0s.0-amd64"
    assert ("curl", "-sSLf", "-o", "/tmp/tmp.1", url) in argvs
    assert ("install", "-m", "0755", "-o", "root", "-g", "root", "-d", "/usr/local/bin") in argvs
    assert ("install", "-m", "0750", "-o", "root", "-g", "root", "/tmp/tmp.1", "/usr/local/bin/k0s") in argvs
    assert argvs[-1] == ("rm", "-f", "/tmp/tmp.1")


def test_file_changed(make_cluster, tmp_path):
    local = tmp_path / "k0s"
    local.write_bytes(b"12345")
    mtime = int(local.stat().st_mtime)

    h = _host(make_cluster, FakeConnection())
    assert h.configurer.file_changed(h, str(local), "/usr/local/bin/k0s")

    h = _host(make_cluster, FakeConnection(stats={"/usr/local/bin/k0s": (5, mtime)}))
    assert not h.configurer.file_changed(h, str(local), "/usr/local/bin/k0s")

    h = _host(make_cluster, FakeConnection(stats={"/usr/local/bin/k0s": (5, mtime - 10)}))
    assert h.configurer.file_changed(h, str(local), "/usr/local/bin/k0s")


def test_check_privilege(make_cluster):
    h = _host(make_cluster, FakeConnection(responses={("true",): PrimitiveFailure("a password is required")}))
    with pytest.raises(PrimitiveFailure, match="sudo"):
        h.configurer.check_privilege(h)

    h = _host(make_cluster, FakeConnection())
    h.configurer.check_privilege(h)


def test_upsert_failed_rename_without_destination_is_not_a_conflict(make_cluster):
    conn = FakeConnection(responses={
        ("mv", "-n", "/tmp/tmp.1", "/missing/dir/f"): PrimitiveFailure("No such file or directory"),
    })
    h = _host(make_cluster, conn)
    with pytest.raises(PrimitiveFailure, match="No such file"):
        h.configurer.upsert_file(h, "/missing/dir/f", "A")
    assert conn.ran("rm", "-f", "/tmp/tmp.1")


def test_upsert_failed_rename_onto_existing_file_is_a_conflict(make_cluster):
    # newer coreutils: mv -n exits non-zero when it skips
    conn = FakeConnection(
        files={"/etc/x": "A"},
        responses={("mv", "-n", "/tmp/tmp.1", "/etc/x"): PrimitiveFailure("not replacing '/etc/x'")},
    )
    h = _host(make_cluster, conn)
    with pytest.raises(UpsertConflict):
        h.configurer.upsert_file(h, "/etc/x", "B")
    assert conn.files["/etc/x"] == "A"


# ----------------- small file helpers -----------------

def test_file_contains(make_cluster):
    conn = FakeConnection(responses={
        ("grep", "-q", "--", "missing", "/etc/k0s/k0s.yaml"): PrimitiveFailure("exit status 1"),
    })
    h = _host(make_cluster, conn)
    assert h.configurer.file_contains(h, "/etc/k0s/k0s.yaml", "apiVersion")
    assert not h.configurer.file_contains(h, "/etc/k0s/k0s.yaml", "missing")
    assert conn.log[0].sudo


def test_move_file_and_delete_dir(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)
    h.configurer.move_file(h, "/tmp/a b", "/etc/k0s/k0s.yaml")
    h.configurer.delete_dir(h, "/var/lib/k0s/old")
    h.configurer.delete_dir(h, "/etc/k0s", sudo=True)

    mv, rmdir, rmdir_sudo = conn.log
    assert mv.argv == ("mv", "/tmp/a b", "/etc/k0s/k0s.yaml") and mv.sudo
    assert rmdir.argv == ("rmdir", "/var/lib/k0s/old") and not rmdir.sudo
    assert rmdir_sudo.sudo


def test_replace_join_token_path(make_cluster):
    conn = FakeConnection()
    h = _host(make_cluster, conn)
    h.configurer.replace_join_token_path(h, "/etc/systemd/system/k0sworker.service")
    (sed,) = conn.log
    assert sed.argv == ("sed", "-i", "s^REPLACEME^/etc/k0s/k0stoken^g", "/etc/systemd/system/k0sworker.service")
    assert sed.sudo
