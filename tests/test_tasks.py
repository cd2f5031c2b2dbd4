from fedora_optimizer.results import PreconditionResult, Reason, ResultKind
from fedora_optimizer.tasks import desktop, network, repositories, security, system

RESOLVECTL_STATUS = """Global
         Protocols: +LLMNR +mDNS -DNSOverTLS DNSSEC=yes/supported
  resolv.conf mode: stub
Current DNS Server: 1.1.1.2
       DNS Servers: 1.1.1.2 1.0.0.2 8.8.8.8 9.9.9.9

Link 2 (enp3s0)
"""


def test_parse_global_dns():
    assert network.parse_global_dns(RESOLVECTL_STATUS) == ["1.1.1.2"]
    assert network.parse_global_dns("Link 2 (enp3s0)\n  DNS Servers: 10.0.0.1") == []


def test_configure_dns_writes_both_files(tk, processes, root):
    processes.on("resolvectl", output=RESOLVECTL_STATUS)
    result = network.configure_dns(tk)

    assert result.kind is ResultKind.SUCCESS
    nm_conf = (root / "etc" / "NetworkManager" / "NetworkManager.conf").read_text()
    assert "[global-dns-domain-*]\nservers=1.1.1.2,1.0.0.2,8.8.8.8,9.9.9.9\n" in nm_conf
    resolved = (root / "etc" / "systemd" / "resolved.conf").read_text()
    assert "DNS=1.1.1.2 1.0.0.2\n" in resolved
    assert "FallbackDNS=8.8.8.8 9.9.9.9\n" in resolved
    assert processes.ran("systemctl", "restart", "NetworkManager")
    assert processes.ran("systemctl", "restart", "systemd-resolved")


def test_configure_dns_restores_backup_when_unverified(tk, processes, root):
    nm_conf = root / "etc" / "NetworkManager" / "NetworkManager.conf"
    nm_conf.parent.mkdir(parents=True)
    nm_conf.write_text("[main]\nplugins=keyfile\n")
    processes.on("resolvectl", output="")

    result = network.configure_dns(tk)

    assert result.kind is ResultKind.RECOVERABLE
    assert result.reason is Reason.SERVICE_NOT_READY
    assert nm_conf.read_text() == "[main]\nplugins=keyfile\n"


def test_optimize_network_leaves_out_obsolete_keys(tk, processes, root):
    assert network.optimize_network(tk).ok
    text = (root / "etc" / "sysctl.d" / "99-network.conf").read_text()
    assert "net.ipv4.tcp_fastopen=3" in text
    assert "tcp_tw_recycle" not in text
    assert processes.ran("sysctl", "-p", "/etc/sysctl.d/99-network.conf")


def test_wifi_skipped_without_wireless_interfaces(tk, processes):
    result = network.optimize_wifi(tk)

    assert result.kind is ResultKind.SKIPPED
    assert result.reason is Reason.NOT_APPLICABLE
    assert processes.calls == []


def test_wifi_power_saving_disabled(tk, processes, root):
    (root / "sys" / "class" / "net" / "wlan0" / "wireless").mkdir(parents=True)
    (root / "sys" / "class" / "net" / "lo").mkdir(parents=True)

    result = network.optimize_wifi(tk)

    assert result.ok
    assert processes.commands()[0] == "iw dev wlan0 set power_save off"
    conf = root / "etc" / "NetworkManager" / "conf.d" / "99-wifi-powersave.conf"
    assert conf.read_text() == "[connection]\nwifi.powersave=2\n"


def test_rpm_fusion_uses_the_running_release(tk, processes):
    processes.on("rpm", "-E", output="40")
    result = repositories.add_rpm_fusion(tk)

    assert result.ok
    (install,) = processes.ran("dnf", "install")
    assert "--nogpgcheck" in install
    assert any(arg.endswith("rpmfusion-free-release-40.noarch.rpm") for arg in install)
    assert any(arg.endswith("rpmfusion-nonfree-release-40.noarch.rpm") for arg in install)


def test_rpm_fusion_gives_up_after_retries(tk, processes, ctx):
    processes.on("rpm", "-E", output="40")
    processes.on("dnf", code=1, output="Curl error")

    result = repositories.add_rpm_fusion(tk)

    assert result.kind is ResultKind.RECOVERABLE
    assert len(processes.ran("dnf", "install")) == 3
    assert ctx.clock.sleeps == [5.0, 10.0]


def test_flathub_installs_flatpak_first(tk, processes, available):
    assert repositories.add_flathub(tk).ok
    commands = processes.commands()
    assert commands[0] == "dnf install -y flatpak"
    assert commands[-1] == "flatpak remote-add --if-not-exists flathub https://flathub.org/repo/flathub.flatpakrepo"


def test_package_conflicts_abort_on_low_resources(tk, processes, monkeypatch):
    monkeypatch.setattr(
        repositories,
        "check_resources",
        lambda *a, **k: PreconditionResult(False, "Insufficient memory: 500 MB available, 1024 MB required"),
    )
    result = repositories.resolve_package_conflicts(tk)

    assert result.kind is ResultKind.RECOVERABLE
    assert result.reason is Reason.INSUFFICIENT_RESOURCES
    assert "500 MB" in result.message
    assert processes.calls == []


def test_package_conflicts_run_in_order(tk, processes, monkeypatch):
    monkeypatch.setattr(repositories, "check_resources", lambda *a, **k: PreconditionResult(True, "ok"))
    assert repositories.resolve_package_conflicts(tk).ok
    assert processes.commands() == [
        "dnf clean all",
        "dnf check",
        "dnf remove --duplicates -y",
        "dnf distro-sync -y --allowerasing",
    ]


def test_cleanup_reports_failed_steps(tk, processes):
    processes.on("journalctl", code=1)
    result = system.cleanup_system(tk)

    assert result.kind is ResultKind.RECOVERABLE
    assert result.reason is Reason.COMMAND_FAILED
    assert "Vacuum journal" in result.message
    assert len(processes.calls) == 3


def test_maintenance_timer(tk, processes, root):
    assert system.optimize_maintenance(tk).ok
    service = (root / "etc" / "systemd" / "system" / "optimize-maintenance.service").read_text()
    assert service.count("ExecStart=") == 5
    assert "Type=oneshot" in service
    timer = (root / "etc" / "systemd" / "system" / "optimize-maintenance.timer").read_text()
    assert "OnCalendar=weekly" in timer
    assert processes.commands()[-1] == "systemctl enable --now optimize-maintenance.timer"


def test_io_scheduler_rules(tk, processes, root):
    assert system.optimize_system_performance(tk).ok
    rules = (root / "etc" / "udev" / "rules.d" / "60-io-scheduler.rules").read_text()
    assert 'KERNEL=="nvme[0-9]n[0-9]", ATTR{queue/scheduler}="none"' in rules
    assert "udevadm trigger" in processes.commands()


def test_zram_install_failure(tk, processes):
    processes.on("dnf", code=1)
    result = system.configure_zram(tk)
    assert result.reason is Reason.NOT_INSTALLED


def test_security_enforces_selinux(tk, processes, root):
    selinux = root / "etc" / "selinux" / "config"
    selinux.parent.mkdir(parents=True)
    selinux.write_text("SELINUX=permissive\nSELINUXTYPE=targeted\n")

    assert security.optimize_security(tk).ok
    assert selinux.read_text() == "SELINUX=enforcing\nSELINUXTYPE=targeted\n"
    commands = processes.commands()
    assert "firewall-cmd --permanent --zone=public --set-target=DROP" in commands
    assert "firewall-cmd --permanent --zone=public --add-service=ssh" in commands
    assert "setenforce 1" in commands


def test_antivirus_units_written_and_enabled(tk, processes, root):
    # rkhunter's first scan reports warnings through its exit code
    processes.on("rkhunter", "--check", code=1)
    result = security.configure_security(tk)

    assert result.ok
    unit_dir = root / "etc" / "systemd" / "system"
    assert (unit_dir / "clamav-scan.timer").read_text().count("OnCalendar=weekly") == 1
    assert "--move=/var/lib/clamav/quarantine" in (unit_dir / "clamav-scan.service").read_text()
    enabled = [c[3] for c in processes.ran("systemctl", "enable", "--now")]
    assert enabled == security.ENABLED_UNITS


def test_chrome_missing(tk, processes):
    result = desktop.configure_chrome(tk)
    assert result.reason is Reason.NOT_INSTALLED
    assert processes.calls == []


def test_chrome_version_detected(tk, processes, available, root):
    available.add("google-chrome")
    processes.on("google-chrome", output="Google Chrome 126.0.6478.126")

    result = desktop.configure_chrome(tk)

    assert result.ok
    profile = (root / "etc" / "profile.d" / "chrome-optimization.sh").read_text()
    assert "export CHROME_ENABLE_WAYLAND=1" in profile
    wayland = (root / "etc" / "environment.d" / "99-chrome-wayland.conf").read_text()
    assert "CHROME_ENABLE_WAYLAND=1" in wayland
    assert "export" not in wayland


def test_gnome_without_desktop_user_skips_gsettings(tk, processes, root):
    assert desktop.optimize_gnome(tk).ok
    assert processes.ran("sudo") == []
    assert processes.commands() == ["dconf update"]
    env = (root / "etc" / "environment.d" / "99-gnome-wayland.conf").read_text()
    assert "MOZ_ENABLE_WAYLAND=1" in env


def test_configure_gnome_writes_xorg_and_mesa(tk, processes, root):
    assert desktop.configure_gnome(tk).ok
    xorg = (root / "etc" / "X11" / "xorg.conf.d" / "20-gnome-optimization.conf").read_text()
    assert '    Option "TearFree" "true"\n' in xorg
    assert "    DefaultDepth 24\n" in xorg
    mesa = root / "etc" / "profile.d" / "mesa.sh"
    assert "export __GL_YIELD=USLEEP" in mesa.read_text()
    dconf = (root / "etc" / "dconf" / "db" / "local.d" / "01-gnome-performance").read_text()
    assert "'triple-buffering'" in dconf
