"""
Class Catalog for Nodus.

Maps a class name to the template used when a scenario creates nodes or
pods of that class. Node classes and pod classes are independent
namespaces. The catalog is loaded once before any scenario runs and is
read-only afterwards.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("nodus.catalog")


class CatalogLoadError(ValueError):
    """A class config file could not be read or validated."""


def _stringify(values: Any) -> Any:
    # YAML turns `cpu: 4` or `tier: 1` into ints; the API wants strings.
    if isinstance(values, dict):
        return {str(k): str(v) for k, v in values.items()}
    return values


def _check_unique(classes: List[Any], kind: str) -> None:
    seen = set()
    for cls in classes:
        if cls.name in seen:
            raise ValueError(f"duplicate {kind} class: {cls.name}")
        seen.add(cls.name)


class NodeClass(BaseModel):
    """Template for fake nodes of one class."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    labels: Dict[str, str] = Field(default_factory=dict)
    resources: Dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", "resources", mode="before")
    @classmethod
    def coerce_strings(cls, v):
        return _stringify(v)


class PodClass(BaseModel):
    """Template for pods of one class."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    labels: Dict[str, str] = Field(default_factory=dict)
    spec: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def coerce_strings(cls, v):
        return _stringify(v)


class NodeConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_classes: List[NodeClass] = Field(default_factory=list, alias="nodeClasses")

    @field_validator("node_classes")
    @classmethod
    def unique_names(cls, v):
        _check_unique(v, "node")
        return v


class PodConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pod_classes: List[PodClass] = Field(default_factory=list, alias="podClasses")

    @field_validator("pod_classes")
    @classmethod
    def unique_names(cls, v):
        _check_unique(v, "pod")
        return v


class ClassCatalog:
    """Read-only lookup of node and pod classes by name."""

    def __init__(
        self,
        node_config: Optional[NodeConfig] = None,
        pod_config: Optional[PodConfig] = None,
    ):
        node_config = node_config or NodeConfig()
        pod_config = pod_config or PodConfig()
        self._nodes: Mapping[str, NodeClass] = MappingProxyType(
            {c.name: c for c in node_config.node_classes}
        )
        self._pods: Mapping[str, PodClass] = MappingProxyType(
            {c.name: c for c in pod_config.pod_classes}
        )

    def node_class(self, name: str) -> Optional[NodeClass]:
        return self._nodes.get(name)

    def pod_class(self, name: str) -> Optional[PodClass]:
        return self._pods.get(name)

    @property
    def node_class_names(self) -> List[str]:
        return list(self._nodes)

    @property
    def pod_class_names(self) -> List[str]:
        return list(self._pods)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CatalogLoadError(f"cannot read class config {path}: {e}") from e
    if not isinstance(data, dict):
        raise CatalogLoadError(f"class config {path} must contain a mapping")
    return data


def load_node_config(path: Union[str, Path]) -> NodeConfig:
    path = Path(path)
    if not path.exists():
        logger.warning(f"Node config not found: {path}, no node classes available")
        return NodeConfig()
    try:
        return NodeConfig.model_validate(_read_yaml(path))
    except ValidationError as e:
        raise CatalogLoadError(f"invalid node config {path}: {e}") from e


def load_pod_config(path: Union[str, Path]) -> PodConfig:
    path = Path(path)
    if not path.exists():
        logger.warning(f"Pod config not found: {path}, no pod classes available")
        return PodConfig()
    try:
        return PodConfig.model_validate(_read_yaml(path))
    except ValidationError as e:
        raise CatalogLoadError(f"invalid pod config {path}: {e}") from e


def load_catalog(
    node_config_path: Union[str, Path], pod_config_path: Union[str, Path]
) -> ClassCatalog:
    """
    Load both class configs into a catalog.

    A missing file yields an empty class list for that kind; an unreadable
    or invalid file raises CatalogLoadError.
    """
    catalog = ClassCatalog(load_node_config(node_config_path), load_pod_config(pod_config_path))
    logger.info(
        f"Class catalog loaded: {len(catalog.node_class_names)} node classes, "
        f"{len(catalog.pod_class_names)} pod classes"
    )
    return catalog
