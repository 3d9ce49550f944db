"""Evidence-based language detection and toolchain resolution."""

from .evidence import EvidenceCollector, Language
from .toolchain import ToolchainResolution, resolve_toolchains

__all__ = ["EvidenceCollector", "Language", "ToolchainResolution", "resolve_toolchains"]
