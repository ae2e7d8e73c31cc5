"""
Catalog Module - Black Box Interface

Purpose: Resolve node and pod class names to resource templates
Interface: ClassCatalog.node_class(), ClassCatalog.pod_class(), load_catalog()
Hidden: YAML layout, validation, storage

Loaded once per run and never mutated during execution.
"""

from .catalog import (
    CatalogLoadError,
    ClassCatalog,
    NodeClass,
    NodeConfig,
    PodClass,
    PodConfig,
    load_catalog,
    load_node_config,
    load_pod_config,
)

__all__ = [
    "CatalogLoadError",
    "ClassCatalog",
    "NodeClass",
    "NodeConfig",
    "PodClass",
    "PodConfig",
    "load_catalog",
    "load_node_config",
    "load_pod_config",
]
