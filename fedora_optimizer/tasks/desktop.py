"""GNOME, Wayland and Chrome tuning tasks."""

from typing import Dict, List, Optional

from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.tasks.base import Toolkit, summarize
from fedora_optimizer.tasks.network import NETWORK_TUNING
from fedora_optimizer.writers import (
    EnvFile,
    IniFile,
    JsonDocument,
    SysctlFile,
    XorgConfig,
    XorgSection,
)

DCONF_PERFORMANCE = "/etc/dconf/db/local.d/01-gnome-performance"
DCONF_HDR = "/etc/dconf/db/local.d/01-gnome-hdr"
ENVIRONMENT = "/etc/environment"
GNOME_WAYLAND_ENV = "/etc/environment.d/99-gnome-wayland.conf"
GNOME_SYSCTL = "/etc/sysctl.d/99-gnome-performance.conf"
XORG_CONF = "/etc/X11/xorg.conf.d/20-gnome-optimization.conf"
MESA_PROFILE = "/etc/profile.d/mesa.sh"
CHROME_PROFILE = "/etc/profile.d/chrome-optimization.sh"
CHROME_WAYLAND_ENV = "/etc/environment.d/99-chrome-wayland.conf"
CHROME_SYSCTL = "/etc/sysctl.d/99-chrome-network.conf"

MUTTER_FEATURES = "\"['scale-monitor-framebuffer', 'variable-refresh-rate', 'triple-buffering']\""

MESA_VARIABLES = {
    "MESA_GL_VERSION_OVERRIDE": "4.5",
    "MESA_GLSL_VERSION_OVERRIDE": "450",
    "__GL_THREADED_OPTIMIZATIONS": 1,
    "__GL_SYNC_TO_VBLANK": 0,
    "__GL_YIELD": "USLEEP",
    "vblank_mode": 0,
}

WAYLAND_VARIABLES = {
    "CLUTTER_BACKEND": "wayland",
    "GDK_BACKEND": "wayland",
    "QT_QPA_PLATFORM": "wayland",
    "SDL_VIDEODRIVER": "wayland",
    "MOZ_ENABLE_WAYLAND": 1,
    "WLR_NO_HARDWARE_CURSORS": 1,
    "WLR_RENDERER_ALLOW_SOFTWARE": 1,
    **MESA_VARIABLES,
}

GNOME_SETTINGS = [
    ("org.gnome.desktop.interface", "enable-animations", "false"),
    ("org.gnome.desktop.interface", "enable-hot-corners", "false"),
    ("org.gnome.desktop.peripherals.touchpad", "tap-to-click", "true"),
    ("org.gnome.desktop.wm.preferences", "button-layout", "appmenu:minimize,maximize,close"),
    ("org.gnome.settings-daemon.plugins.power", "sleep-inactive-ac-type", "nothing"),
    ("org.gnome.settings-daemon.plugins.power", "sleep-inactive-battery-type", "nothing"),
]

CHROME_FEATURES = [
    "FORCE_DIRECT_COMPOSITION",
    "FORCE_DIRECT_COMPOSITION_VIDEO_OVERLAYS",
    "FORCE_ZERO_COPY_VIDEO_CAPTURE",
    "ENABLE_GPU_RASTERIZATION",
    "ENABLE_ZERO_COPY",
    "ENABLE_OOP_RASTERIZATION",
    "ENABLE_SKIA_RENDERER",
    "ENABLE_VULKAN",
    "ENABLE_WAYLAND",
    "ENABLE_QUIC",
    "ENABLE_PARALLEL_DOWNLOADING",
    "ENABLE_EXPERIMENTAL_WEB_PLATFORM_FEATURES",
]

CHROME_TUNING = {
    "CHROME_NETWORK_THREAD_PRIORITY": "high",
    "CHROME_IO_THREAD_PRIORITY": "high",
    "CHROME_GPU_THREAD_PRIORITY": "high",
    "CHROME_RENDERER_THREAD_PRIORITY": "high",
    "CHROME_MEMORY_PRESSURE_LEVEL": "none",
    "CHROME_RENDERER_PROCESS_LIMIT": -1,
    "CHROME_TAB_DISCARDING": "false",
    "CHROME_TAB_FREEZE": "false",
}


def mutter_performance() -> IniFile:
    return IniFile(
        {
            "org/gnome/mutter": {
                "experimental-features": MUTTER_FEATURES,
                "dynamic-buffer-allocation": "true",
                "max-monitor-scale": 2,
                "frame-rate": 144,
            }
        }
    )


def gnome_hdr() -> IniFile:
    return IniFile(
        {
            "org/gnome/settings-daemon/plugins/color": {
                "night-light-enabled": "true",
                "night-light-temperature": 4000,
            },
            "org/gnome/mutter": {
                "experimental-features": MUTTER_FEATURES,
                "frame-rate": 144,
            },
        }
    )


def xorg_optimization() -> XorgConfig:
    accel = [
        ("Option", "TripleBuffer", "true"),
        ("Option", "BackingStore", "true"),
        ("Option", "RenderAccel", "true"),
        ("Option", "AccelDFS", "true"),
    ]
    return XorgConfig(
        [
            XorgSection(
                "Device",
                [
                    ("Identifier", "GPU0"),
                    ("Driver", "modesetting"),
                    ("Option", "TearFree", "true"),
                    ("Option", "AccelMethod", "glamor"),
                    ("Option", "DRI", "3"),
                    *accel,
                ],
            ),
            XorgSection(
                "Screen",
                [
                    ("Identifier", "Screen0"),
                    ("Device", "GPU0"),
                    ("DefaultDepth", 24),
                    ("Option", "Stereo", "0"),
                    ("Option", "nvidiaXineramaInfoOrder", "DFP-0"),
                    (
                        "Option",
                        "metamodes",
                        "nvidia-auto-select +0+0 {ForceCompositionPipeline=On, ForceFullCompositionPipeline=On}",
                    ),
                    ("Option", "AllowIndirectGLXProtocol", "off"),
                    *accel,
                ],
            ),
            XorgSection("Extensions", [("Option", "Composite", "Enable")]),
        ]
    )


def _apply_gnome_settings(tk: Toolkit) -> List:
    records = [tk.gsettings(schema, key, value) for schema, key, value in GNOME_SETTINGS]
    return [r for r in records if r is not None]


def configure_gnome(tk: Toolkit) -> TaskResult:
    """Mutter triple buffering, Wayland session variables, HDR, GPU and shell settings."""
    tk.info("Optimizing GNOME and Wayland...")
    if not tk.dnf_install(["gnome-tweaks", "gnome-extensions-app", "mutter-devel"]).ok:
        tk.error("There was an error installing the required packages.")
        return TaskResult.recoverable(Reason.NOT_INSTALLED, "GNOME packages install failed")

    tk.info("Configuring GNOME performance...")
    writer = tk.writer
    writer.write(DCONF_PERFORMANCE, mutter_performance())
    writer.write(ENVIRONMENT, EnvFile(WAYLAND_VARIABLES), backup=True)

    tk.info("Configuring HDR support...")
    records = [tk.dnf_install(["colord-gtk4", "libcolord-gtk4"])]
    writer.write(DCONF_HDR, gnome_hdr())

    writer.write(
        GNOME_SYSCTL,
        SysctlFile(
            {
                "vm.swappiness": 10,
                "vm.vfs_cache_pressure": 50,
                "vm.dirty_ratio": 10,
                "vm.dirty_background_ratio": 5,
                "vm.dirty_expire_centisecs": 500,
                "vm.dirty_writeback_centisecs": 100,
            },
            "Improved graphical performance",
        ),
    )
    records.append(tk.sysctl_apply(GNOME_SYSCTL))
    records.append(tk.run("Update dconf databases", ["dconf", "update"], suppress=True))

    tk.info("Configuring GPU optimizations...")
    writer.write(XORG_CONF, xorg_optimization())
    records.extend(_apply_gnome_settings(tk))
    writer.write(MESA_PROFILE, EnvFile(MESA_VARIABLES, export=True), mode=0o755)

    result = summarize(tk, records, "GNOME and Wayland optimization completed.")
    tk.info("Restart your system to fully activate all changes.")
    return result


def chrome_version(tk: Toolkit) -> Optional[str]:
    if not tk.runner.command_exists("google-chrome"):
        return None
    code, output = tk.runner.capture(["google-chrome", "--version"])
    fields = output.split()
    # "Google Chrome 126.0.6478.126"
    if code != 0 or len(fields) < 3:
        return None
    return fields[2]


def chrome_local_state(downloads: str) -> JsonDocument:
    return JsonDocument(
        {
            "browser": {
                "enabled_labs_experiments": [
                    "enable-wayland@1",
                    "enable-accelerated-video-decode@1",
                    "enable-accelerated-video-encode@1",
                    "enable-gpu-rasterization@1",
                    "enable-zero-copy@1",
                    "enable-parallel-downloading@1",
                    "enable-quic@1",
                    "enable-experimental-web-platform-features@1",
                ]
            },
            "gpu": {
                "driver_bug_workarounds": {
                    "disable_gpu_driver_bug_workarounds": False,
                    "force_direct_composition": True,
                    "force_direct_composition_video_overlays": True,
                    "force_zero_copy_video_capture": True,
                },
                "feature_flags": {
                    "enable_gpu_rasterization": True,
                    "enable_zero_copy": True,
                    "enable_oop_rasterization": True,
                    "enable_skia_renderer": True,
                    "enable_vulkan": True,
                },
            },
            "download": _download_settings(downloads),
            "performance": {
                "memory_pressure_level": "none",
                "renderer_process_limit": -1,
                "tab_discarding": False,
                "tab_freeze": False,
            },
        }
    )


def _download_settings(downloads: str) -> Dict:
    return {
        "default_directory": downloads,
        "directory_upgrade": True,
        "extensions_to_open": "",
        "prompt_for_download": False,
    }


def chrome_preferences(downloads: str) -> JsonDocument:
    allowed = [
        "plugins", "popups", "geolocation", "notifications", "fullscreen",
        "mouselock", "mixed_script", "media_stream", "media_stream_mic",
        "media_stream_camera", "protocol_handlers", "ppapi_broker",
        "automatic_downloads", "midi_sysex", "push_messaging",
        "ssl_cert_decisions", "metro_switch_to_desktop",
        "protected_media_identifier", "site_engagement", "durable_storage",
    ]
    defaults = {name: 1 for name in allowed}
    defaults["auto_select_certificate"] = 2
    return JsonDocument(
        {
            "download": _download_settings(downloads),
            "profile": {
                "content_settings": {
                    "exceptions": {
                        "plugins": {
                            "*,*": {"last_modified": "13189824000000000", "setting": 1}
                        }
                    }
                },
                "default_content_setting_values": defaults,
            },
        }
    )


def chrome_environment(export: bool) -> EnvFile:
    variables = {f"CHROME_{name}": 1 for name in CHROME_FEATURES}
    if export:
        variables.update(CHROME_TUNING)
    return EnvFile(variables, "Chrome optimizations", export=export)


def _write_chrome_profile(tk: Toolkit) -> List:
    """User-level Chrome state; returns the chown record, or nothing without a desktop user."""
    user, home = tk.desktop_user(), tk.desktop_home()
    if user is None or home is None:
        tk.warning("No desktop user found; skipping Chrome profile settings.")
        return []
    config_dir = home / ".config" / "google-chrome"
    downloads = str(home / "Downloads")
    tk.writer.write(config_dir / "Local State", chrome_local_state(downloads))
    tk.writer.write(config_dir / "Default" / "Preferences", chrome_preferences(downloads))
    return [
        tk.run(
            "Hand Chrome profile to desktop user",
            ["chown", "-R", f"{user}:{user}", str(tk.ctx.path(config_dir))],
            suppress=True,
        )
    ]


def configure_chrome(tk: Toolkit) -> TaskResult:
    tk.info("Optimizing Chrome...")
    version = chrome_version(tk)
    if version is None:
        tk.error("Chrome is not installed or could not be detected. Install Chrome first via DNF.")
        return TaskResult.recoverable(Reason.NOT_INSTALLED, "google-chrome not found")
    tk.success(f"Chrome version {version} detected.")

    tk.info("Configuring Chrome for Wayland and optimizations...")
    records = _write_chrome_profile(tk)
    tk.writer.write(CHROME_PROFILE, chrome_environment(export=True), mode=0o755)
    tk.writer.write(CHROME_WAYLAND_ENV, chrome_environment(export=False))
    tk.writer.write(CHROME_SYSCTL, SysctlFile(NETWORK_TUNING, "Chrome network optimizations"))
    records.append(tk.sysctl_apply(CHROME_SYSCTL))

    result = summarize(tk, records, "Chrome optimization completed.")
    tk.info("Restart Chrome to fully activate all changes.")
    return result


def optimize_gnome(tk: Toolkit) -> TaskResult:
    tk.info("Optimizing GNOME...")
    records = _apply_gnome_settings(tk)
    tk.writer.write(DCONF_PERFORMANCE, mutter_performance())
    tk.writer.write(
        GNOME_WAYLAND_ENV, EnvFile(WAYLAND_VARIABLES, "GNOME Wayland optimizations")
    )
    records.append(tk.run("Update dconf databases", ["dconf", "update"], suppress=True))

    result = summarize(tk, records, "GNOME optimization completed.")
    tk.info("Restart your system to fully activate all changes.")
    return result
