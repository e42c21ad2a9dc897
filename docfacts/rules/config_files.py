"""Detection rules for Spring configuration files (properties and YAML)."""

from __future__ import annotations

import re
from typing import List

import yaml

from ..models import FactKind
from .base import (
    AttributeExtractor,
    Attributes,
    DetectionRule,
    FileFilter,
    NameStrategy,
    NumberedLine,
    RuleInputError,
    Scope,
)

PROPERTIES_FILES = FileFilter(
    suffixes=(".properties",),
    globs=("application*.properties", "bootstrap*.properties"),
)
YAML_FILES = FileFilter(
    suffixes=(".yml", ".yaml"),
    globs=("application*.yml", "application*.yaml", "bootstrap*.yml", "bootstrap*.yaml"),
)

_PROFILE = AttributeExtractor.of(
    "profile",
    r"(?:^|/)(?:application|bootstrap)-([\w.-]+?)\.(?:properties|ya?ml)$",
    scope=Scope.PATH,
    optional=True,
    quiet=True,
)

_NULL_TAG = "tag:yaml.org,2002:null"


def flatten_yaml(text: str) -> List[NumberedLine]:
    """Flatten YAML documents into ``(line, "a.b[0]=value")`` pairs.

    Line numbers come from the scalar's node mark so locations stay meaningful.
    Multi-document files are flattened in order; repeated keys across documents
    surface later as identity collisions.
    """
    lines: List[NumberedLine] = []
    try:
        for document in yaml.compose_all(text, Loader=yaml.SafeLoader):
            if document is not None:
                _flatten_node(document, "", lines)
    except yaml.YAMLError as exc:
        raise RuleInputError(f"invalid YAML: {exc}") from exc
    return lines


def _flatten_node(node: yaml.Node, prefix: str, out: List[NumberedLine]) -> None:
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            key = str(key_node.value)
            _flatten_node(value_node, f"{prefix}.{key}" if prefix else key, out)
        return
    if isinstance(node, yaml.SequenceNode):
        for index, item in enumerate(node.value):
            _flatten_node(item, f"{prefix}[{index}]", out)
        return
    if not prefix:
        return
    value = "" if node.tag == _NULL_TAG else str(node.value)
    value = value.replace("\r", "").replace("\n", "\\n")
    out.append((node.start_mark.line + 1, f"{prefix}={value}"))


def properties_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.CONFIG_PROPERTY,
        name="spring-properties",
        files=PROPERTIES_FILES,
        marker=re.compile(r"^\s*(?P<name>[^\s=:#!]+)\s*[=:]\s*(?P<value>.*?)\s*$"),
        naming=NameStrategy.CAPTURE,
        window=window,
        identity="config:{profile}:{name}",
        attributes=(
            AttributeExtractor.of(
                "value",
                r"^\s*[^\s=:#!]+\s*[=:]\s*(.*?)\s*$",
                optional=True,
                quiet=True,
            ),
            _PROFILE,
        ),
        normalize=_normalize_property,
    )


def yaml_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.CONFIG_PROPERTY,
        name="spring-yaml",
        files=YAML_FILES,
        marker=re.compile(r"^(?P<name>[^=]+)=(?P<value>.*)$"),
        naming=NameStrategy.CAPTURE,
        window=window,
        identity="config:{profile}:{name}",
        attributes=(
            AttributeExtractor.of("value", r"^[^=]+=(.*)$", optional=True, quiet=True),
            _PROFILE,
        ),
        normalize=_normalize_property,
        preprocess=flatten_yaml,
    )


def config_rules(window: int = 5) -> List[DetectionRule]:
    return [properties_rule(window), yaml_rule(window)]


def _normalize_property(attributes: Attributes) -> Attributes:
    return {
        "value": attributes.get("value", ""),
        "profile": attributes.get("profile") or "default",
    }


__all__ = ["config_rules", "flatten_yaml", "properties_rule", "yaml_rule"]
