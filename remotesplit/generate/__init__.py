"""
Source and manifest generators for split units.
"""

from .client_stub import generate_client_stub, generate_stub_types, stub_module_name
from .container import (
    COMPOSE_FILE,
    DOCKERFILE,
    REQUIREMENTS_FILE,
    distribution_name,
    main_artefacts,
    sibling_artefacts,
)
from .entry_shim import HANDLER_NAMES, generate_entry_shim
from .manifest import (
    MAIN_MODULE,
    MANIFEST_FILE,
    SERVICE_MODULE,
    dump_manifest,
    load_manifest,
    main_manifest,
    service_manifest,
)
from .service_module import generate_service_module

__all__ = [
    "generate_client_stub",
    "generate_stub_types",
    "stub_module_name",
    "COMPOSE_FILE",
    "DOCKERFILE",
    "REQUIREMENTS_FILE",
    "distribution_name",
    "main_artefacts",
    "sibling_artefacts",
    "HANDLER_NAMES",
    "generate_entry_shim",
    "MAIN_MODULE",
    "MANIFEST_FILE",
    "SERVICE_MODULE",
    "dump_manifest",
    "load_manifest",
    "main_manifest",
    "service_manifest",
    "generate_service_module",
]
