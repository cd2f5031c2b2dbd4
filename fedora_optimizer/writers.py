"""
Typed configuration documents and the writer that puts them on disk.

Each document renders to the exact text of its target format, so file
content can be checked without touching the system.
"""

import json
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from fedora_optimizer.config import Context
from fedora_optimizer.errors import ConfigWriteError

Value = Union[str, int, bool]
# A list value renders as the key repeated once per item.
Entries = Dict[str, Union[Value, List[Value]]]


def _format_value(value: Value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_entries(entries: Entries) -> List[str]:
    lines = []
    for key, value in entries.items():
        values = value if isinstance(value, list) else [value]
        lines.extend(f"{key}={_format_value(v)}" for v in values)
    return lines


@dataclass
class IniFile:
    """Sectioned key=value file: NetworkManager.conf, resolved.conf, dnf.conf, dconf keyfiles."""

    sections: Dict[str, Entries] = field(default_factory=dict)
    comment: Optional[str] = None

    def render(self) -> str:
        lines = [f"# {self.comment}"] if self.comment else []
        for i, (name, entries) in enumerate(self.sections.items()):
            if i:
                lines.append("")
            lines.append(f"[{name}]")
            lines.extend(_render_entries(entries))
        return "\n".join(lines) + "\n"


@dataclass
class SystemdUnit:
    description: str
    unit: Entries = field(default_factory=dict)
    service: Entries = field(default_factory=dict)
    timer: Entries = field(default_factory=dict)
    install: Entries = field(default_factory=dict)

    def render(self) -> str:
        sections: Dict[str, Entries] = {"Unit": {"Description": self.description, **self.unit}}
        for name, entries in (("Service", self.service), ("Timer", self.timer), ("Install", self.install)):
            if entries:
                sections[name] = entries
        return IniFile(sections).render()


@dataclass
class SysctlFile:
    settings: Dict[str, Value]
    comment: Optional[str] = None

    def render(self) -> str:
        lines = [f"# {self.comment}"] if self.comment else []
        lines.extend(f"{key}={_format_value(value)}" for key, value in self.settings.items())
        return "\n".join(lines) + "\n"


@dataclass
class EnvFile:
    """KEY=VALUE lines for /etc/environment(.d); ``export`` turns it into a profile.d script."""

    variables: Dict[str, Value]
    comment: Optional[str] = None
    export: bool = False

    def render(self) -> str:
        prefix = "export " if self.export else ""
        lines = [f"# {self.comment}"] if self.comment else []
        lines.extend(f"{prefix}{key}={_format_value(v)}" for key, v in self.variables.items())
        return "\n".join(lines) + "\n"


@dataclass
class UdevRule:
    match: Dict[str, str]
    assign: Dict[str, str]

    def render(self) -> str:
        parts = [f'{key}=="{value}"' for key, value in self.match.items()]
        parts.extend(f'{key}="{value}"' for key, value in self.assign.items())
        return ", ".join(parts)


@dataclass
class UdevRules:
    rules: List[UdevRule]
    comment: Optional[str] = None

    def render(self) -> str:
        lines = [f"# {self.comment}"] if self.comment else []
        lines.extend(rule.render() for rule in self.rules)
        return "\n".join(lines) + "\n"


@dataclass
class XorgSection:
    kind: str
    # (keyword, *args) e.g. ("Option", "TearFree", "true"); str args are quoted, int args bare
    entries: List[Tuple[Union[str, int], ...]] = field(default_factory=list)

    def render(self) -> str:
        lines = [f'Section "{self.kind}"']
        for keyword, *args in self.entries:
            rendered = " ".join(str(a) if isinstance(a, int) else f'"{a}"' for a in args)
            lines.append(f"    {keyword} {rendered}")
        lines.append("EndSection")
        return "\n".join(lines)


@dataclass
class XorgConfig:
    sections: List[XorgSection]

    def render(self) -> str:
        return "\n\n".join(section.render() for section in self.sections) + "\n"


@dataclass
class JsonDocument:
    data: Dict[str, Any]

    def render(self) -> str:
        return json.dumps(self.data, indent=2) + "\n"


class ConfigWriter:
    """Writes rendered documents under the context root and logs each change."""

    BACKUP_SUFFIX = ".backup"

    def __init__(self, ctx: Context):
        self.ctx = ctx

    def backup_path(self, target: Union[str, Path]) -> Path:
        path = self.ctx.path(target)
        return path.with_name(path.name + self.BACKUP_SUFFIX)

    def backup(self, target: Union[str, Path]) -> Optional[Path]:
        path = self.ctx.path(target)
        if not path.is_file():
            return None
        backup = self.backup_path(target)
        try:
            shutil.copy2(path, backup)
        except OSError as e:
            raise ConfigWriteError(f"Failed to back up {path}: {e}") from e
        self.ctx.logger.info(f"Backed up {target} to {backup.name}")
        return backup

    def restore(self, target: Union[str, Path]) -> bool:
        backup = self.backup_path(target)
        if not backup.is_file():
            self.ctx.logger.warning(f"No backup of {target} to restore")
            return False
        try:
            shutil.move(str(backup), str(self.ctx.path(target)))
        except OSError as e:
            raise ConfigWriteError(f"Failed to restore {target}: {e}") from e
        self.ctx.logger.info(f"Restored {target} from backup")
        return True

    def write_text(
        self,
        target: Union[str, Path],
        text: str,
        backup: bool = False,
        mode: Optional[int] = None,
    ) -> Path:
        path = self.ctx.path(target)
        try:
            if backup:
                self.backup(target)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
            if mode is not None:
                os.chmod(path, mode)
        except OSError as e:
            raise ConfigWriteError(f"Failed to write {target}: {e}") from e
        self.ctx.logger.info(f"Wrote {target}")
        self.ctx.logger.debug(f"{target}:\n{text}")
        return path

    def write(self, target: Union[str, Path], document: Any, backup: bool = False, mode: Optional[int] = None) -> Path:
        return self.write_text(target, document.render(), backup=backup, mode=mode)

    def set_key(self, target: Union[str, Path], key: str, value: str) -> bool:
        """Set ``KEY=value`` in a flat key/value file, replacing the existing line or appending one."""
        path = self.ctx.path(target)
        try:
            text = path.read_text() if path.exists() else ""
            pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
            new_line = f"{key}={value}"
            if pattern.search(text):
                updated = pattern.sub(new_line, text)
            else:
                updated = text + ("" if not text or text.endswith("\n") else "\n") + new_line + "\n"
            if updated == text:
                return False
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(updated)
        except OSError as e:
            raise ConfigWriteError(f"Failed to update {key} in {target}: {e}") from e
        self.ctx.logger.info(f"Set {key}={value} in {target}")
        return True
