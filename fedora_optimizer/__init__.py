"""
Fedora Optimization Tool
--------------------------------------------------
A menu-driven utility that applies a catalogue of system optimizations to a
Fedora workstation: DNS, kernel parameters, repositories, security tooling,
GNOME/Wayland tweaks, network and WiFi tuning. Ships a companion uninstaller
for the Fedora LEMP Multisite (FLM) web stack.

Requires root privileges.
Version: 1.0.0
"""

APP_NAME = "Fedora Optimizer"
APP_SUBTITLE = "FOT - Fedora Optimization Tool"
VERSION = "1.0.0"
