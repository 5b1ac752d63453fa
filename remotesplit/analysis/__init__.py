"""
Bundle analysis for remotesplit: byte attribution and export discovery.
"""

from .bundle import (
    BundleAnalyzer,
    ImportVisitor,
    analyze_bundle,
    analyze_metafile,
    attribute_inputs,
    extract_package_name,
)
from .exports import discover_exports, parse_exports

__all__ = [
    "BundleAnalyzer",
    "ImportVisitor",
    "analyze_bundle",
    "analyze_metafile",
    "attribute_inputs",
    "extract_package_name",
    "discover_exports",
    "parse_exports",
]
