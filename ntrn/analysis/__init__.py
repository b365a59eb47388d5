"""Static analysis of Next.js projects."""

from ntrn.analysis.analyzer import IntelligentProjectAnalyzer, render_summary
from ntrn.analysis.code_parser import CodeParser
from ntrn.analysis.composition import ComponentCompositionMapper
from ntrn.analysis.config_analyzer import ConfigurationAnalyzer
from ntrn.analysis.filters import is_source_file
from ntrn.analysis.structure import scan_structure

__all__ = [
    "CodeParser",
    "ComponentCompositionMapper",
    "ConfigurationAnalyzer",
    "IntelligentProjectAnalyzer",
    "is_source_file",
    "render_summary",
    "scan_structure",
]
