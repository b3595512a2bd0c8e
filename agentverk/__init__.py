"""Helpers for QEMU VMs run for AI agents: QMP client, provisioning steps, system summary and templates."""

__version__ = "0.2.4"

__all__ = ["qmp", "steps", "system_info", "template"]