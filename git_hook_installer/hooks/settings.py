"""Global hook settings rendered as a comment header inside the managed block."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .. import __version__
from ..detection.toolchain import JsTsToolchain, RustToolchain, ToolchainResolution
from .merger import ENABLED_HEADER_KEY

SETTINGS_TITLE = "# git-hook-installer settings:"
SETTINGS_PREFIX = "#   "


@dataclass(frozen=True)
class HookSettings:
    """Everything the generated block depends on, re-derived on every run."""

    resolution: ToolchainResolution
    repo_root: Path
    enabled: bool = True
    version: str = __version__

    @property
    def languages(self) -> List[str]:
        return [choice.language.value for choice in self.resolution.choices]

    def header_items(self) -> List[Tuple[str, str]]:
        """Ordered `key=value` pairs written under the settings title."""
        items: List[Tuple[str, str]] = [
            ("version", self.version),
            (ENABLED_HEADER_KEY, "1" if self.enabled else "0"),
            ("languages", ",".join(self.languages) or "none"),
        ]
        for choice in self.resolution.choices:
            key = choice.language.value
            items.append((key, choice.tool_name))
            items.append((f"{key}.reason", choice.reason))
            if isinstance(choice, JsTsToolchain):
                items.append((f"{key}.typecheck", "1" if choice.typecheck else "0"))
            if isinstance(choice, RustToolchain):
                items.append((f"{key}.manifest_dir", self.relative(choice.manifest_dir)))
        if self.resolution.excluded:
            items.append(
                ("excluded", ",".join(language.value for language in self.resolution.excluded))
            )
        return items

    def header_lines(self) -> List[str]:
        return [SETTINGS_TITLE] + [
            f"{SETTINGS_PREFIX}{key}={value}" for key, value in self.header_items()
        ]

    def relative(self, path: Path) -> str:
        """Repository-relative POSIX form of `path`, or "." for the root itself."""
        try:
            relative = path.relative_to(self.repo_root)
        except ValueError:
            return path.as_posix()
        return relative.as_posix() or "."


def parse_settings(lines: Iterable[str]) -> Dict[str, str]:
    """Read the settings header back from managed-block body lines."""
    settings: Dict[str, str] = {}
    in_header = False
    for raw in lines:
        line = raw.rstrip("\r\n")
        if line.strip() == SETTINGS_TITLE:
            in_header = True
            continue
        if not in_header:
            continue
        if not line.startswith(SETTINGS_PREFIX) or "=" not in line:
            break
        key, _, value = line[len(SETTINGS_PREFIX) :].partition("=")
        settings[key.strip()] = value.strip()
    return settings


__all__ = ["HookSettings", "SETTINGS_TITLE", "parse_settings"]
