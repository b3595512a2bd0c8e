"""Render ``~/.agv/system.md``, a short summary of a VM for agents inside it."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MixinNotes:
    """Notes that one applied mixin declared about its wiring."""

    name: str
    notes: list[str] = field(default_factory=list)


@dataclass
class SystemProfile:
    """The parts of a resolved VM configuration that the summary describes."""

    os_family: str
    user: str
    config_notes: list[str] = field(default_factory=list)
    mixins_applied: list[str] = field(default_factory=list)
    mixin_notes: list[MixinNotes] = field(default_factory=list)


def render(profile: SystemProfile, arch: str) -> str:
    """Return the markdown body of ``~/.agv/system.md``.

    ``arch`` is the guest architecture, such as ``aarch64`` or ``x86_64``.
    """
    lines = [
        "# agv system info",
        "",
        "_Initial VM state — what agv installed at first boot. May have drifted since._",
        "",
        f"- OS family: {profile.os_family} ({arch})",
        f"- User: `{profile.user}` (passwordless sudo)",
    ]

    # Notes about this VM come before the per-mixin list.
    if profile.config_notes:
        lines += ["", "## This VM", ""]
        lines += [f"- {note}" for note in profile.config_notes]

    if profile.mixins_applied:
        lines += ["", "## Mixins", ""]
        notes_by_name = {entry.name: entry.notes for entry in profile.mixin_notes}
        for name in profile.mixins_applied:
            notes = notes_by_name.get(name)
            if notes:
                first, *rest = notes
                lines.append(f"- **{name}**: {first}")
                lines += [f"  - {note}" for note in rest]
            else:
                lines.append(f"- **{name}**")

    return "\n".join(lines) + "\n"