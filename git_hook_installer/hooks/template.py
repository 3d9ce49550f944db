"""Renders the managed pre-commit block from hook settings."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..detection.evidence import LANGUAGE_SIGNALS, Language
from ..detection.toolchain import RustToolchain, ToolchainChoice
from ..runtime.protocol import STASH_MESSAGE, RuntimeState
from .merger import ENABLED_VARIABLE, MANAGED_BLOCK_BEGIN, MANAGED_BLOCK_END
from .settings import HookSettings

_TEMPLATES_DIR = Path(__file__).with_name("templates")
_BLOCK_TEMPLATE = "pre_commit.sh.j2"

_GLOBS: Dict[Language, str] = {
    entry.language: " ".join(f"*{extension}" for extension in entry.extensions)
    for entry in LANGUAGE_SIGNALS
}

# Formatted alongside JS/TS sources but never counted as evidence for it.
_JS_TS_FORMAT_EXTRA = "*.json"
_MARKUP_GLOBS = "*.md *.markdown *.yml *.yaml"


def shell_escape(value: object) -> str:
    """Escape text for embedding inside a double-quoted POSIX shell string."""
    text = str(value)
    for char in ("\\", '"', "$", "`"):
        text = text.replace(char, f"\\{char}")
    return text


class BlockTemplateEngine:
    """Produces the marker-delimited block; identical settings give identical bytes."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.env = self._create_env(templates_dir)

    def render_block(self, settings: HookSettings) -> str:
        sections = [self.render_section(choice, settings) for choice in settings.resolution.choices]
        template = self.env.get_template(_BLOCK_TEMPLATE)
        return template.render(
            begin_marker=MANAGED_BLOCK_BEGIN,
            end_marker=MANAGED_BLOCK_END,
            header_lines=settings.header_lines(),
            enabled=settings.enabled,
            enabled_variable=ENABLED_VARIABLE,
            stash_message=shell_escape(STASH_MESSAGE),
            states={state.name: state.value for state in RuntimeState},
            sections=sections,
        )

    def render_section(self, choice: ToolchainChoice, settings: HookSettings) -> str:
        template = self.env.get_template(f"sections/{choice.language.value}.sh.j2")
        context = {"choice": choice, "globs": _GLOBS[choice.language]}
        if choice.language is Language.JS_TS:
            context["format_globs"] = f"{context['globs']} {_JS_TS_FORMAT_EXTRA}"
            context["markup_globs"] = _MARKUP_GLOBS
        if isinstance(choice, RustToolchain):
            context["manifest_dir"] = settings.relative(choice.manifest_dir)
        return template.render(**context).rstrip("\n")

    def section_names(self) -> List[str]:
        return sorted(
            name[len("sections/") : -len(".sh.j2")]
            for name in self.env.list_templates(extensions=["j2"])
            if name.startswith("sections/")
        )

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(_TEMPLATES_DIR))
        env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        env.filters["shell_escape"] = shell_escape
        return env


__all__ = ["BlockTemplateEngine", "shell_escape"]
