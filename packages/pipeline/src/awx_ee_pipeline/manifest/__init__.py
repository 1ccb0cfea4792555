from .bindep import parse_bindep, parse_bindep_line, render_bindep, render_bindep_line
from .loader import (
    dump_manifest,
    load_manifest,
    manifest_to_dict,
    parse_manifest,
    read_manifest_mapping,
    write_manifest,
)
from .models import (
    CollectionRequirement,
    GalaxyRequirements,
    Manifest,
    PythonRequirements,
    SystemPackage,
    SystemRequirements,
)
from .schema import validate_manifest_structure

__all__ = [
    "Manifest",
    "CollectionRequirement",
    "GalaxyRequirements",
    "SystemPackage",
    "SystemRequirements",
    "PythonRequirements",
    "load_manifest",
    "parse_manifest",
    "read_manifest_mapping",
    "manifest_to_dict",
    "dump_manifest",
    "write_manifest",
    "parse_bindep",
    "parse_bindep_line",
    "render_bindep",
    "render_bindep_line",
    "validate_manifest_structure",
]
