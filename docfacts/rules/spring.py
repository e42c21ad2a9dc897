"""Built-in detection rules for Spring Boot services written in Java or Kotlin."""

from __future__ import annotations

import re
from typing import List, Optional

from ..models import FactKind
from .base import (
    AttributeExtractor,
    Attributes,
    DetectionRule,
    FileFilter,
    NameStrategy,
    Scope,
)
from .paths import join_paths, method_upper, normalize_path, split_list

JVM_SOURCES = FileFilter(suffixes=(".java", ".kt"))
EXCEPTION_SOURCES = FileFilter(
    suffixes=(".java", ".kt"),
    globs=("*Exception.java", "*Error.java", "*Exception.kt", "*Error.kt"),
)

_STANDARD_EXCEPTIONS = {
    "Exception",
    "RuntimeException",
    "IllegalArgumentException",
    "IllegalStateException",
    "Throwable",
    "Error",
}

_STORE_BY_ANNOTATION = {"Entity": "jpa", "Document": "mongodb"}

# Annotation argument fragments. Arrays are matched item by item so a quoted
# "${placeholder}" does not end the array at its closing brace.
_QUOTED = r'"[^"]*"'
_ITEM = rf"(?:{_QUOTED}|[\w.:$]+)"
_ARRAY = (
    rf"\{{\s*{_ITEM}(?:\s*,\s*{_ITEM})*\s*,?\s*\}}"
    rf"|\[\s*{_ITEM}(?:\s*,\s*{_ITEM})*\s*,?\s*\]"
)
_STRINGS = (
    rf"\{{\s*{_QUOTED}(?:\s*,\s*{_QUOTED})*\s*,?\s*\}}"
    rf"|\[\s*{_QUOTED}(?:\s*,\s*{_QUOTED})*\s*,?\s*\]"
    rf"|{_QUOTED}"
)
_CONSTANT = r"[A-Z]\w*(?:\.[A-Z][A-Z0-9_]*)+\b|[A-Z][A-Z0-9_]*\b"

_PUBLIC_JAVA_METHOD = (
    r"^\s*public\s+(?!class\b|interface\b|enum\b|record\b)[^=;(]*?\S\s+(\w+)\s*\("
)
_PUBLIC_KOTLIN_FUN = (
    r"^\s*(?:(?:override|suspend|open|inline|operator)\s+)*fun\s+"
    r"(?:<[^>]*>\s*)?(?:[\w.]+\.)?(\w+)\s*\("
)
_HTTP_CLIENT_TYPES = r"RestTemplate|WebClient|RestClient"


def endpoint_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.ENDPOINT,
        name="spring-endpoint",
        files=JVM_SOURCES,
        requires=re.compile(r"@(?:Rest)?Controller\b"),
        marker=re.compile(r"@(?:(?:Get|Post|Put|Delete|Patch)Mapping|RequestMapping)\b"),
        naming=NameStrategy.ENCLOSING,
        window=window,
        identity="controller:{name}#{httpMethod}:{path}",
        attributes=(
            AttributeExtractor.of(
                "httpMethod",
                r"@(Get|Post|Put|Delete|Patch)Mapping\b",
                r"RequestMethod\.([A-Za-z]+)",
                scope=Scope.STATEMENT,
                optional=True,
                quiet=True,
                collect=True,
            ),
            AttributeExtractor.of(
                "path",
                rf"Mapping\s*\(\s*({_STRINGS})",
                rf"\b(?:value|path)\s*=\s*({_STRINGS})",
                scope=Scope.STATEMENT,
                optional=True,
                quiet=True,
            ),
            AttributeExtractor.of(
                "basePath",
                rf"@RequestMapping\s*\(\s*({_STRINGS})",
                rf"@RequestMapping\s*\([^)]*?\b(?:value|path)\s*=\s*({_STRINGS})",
                scope=Scope.DECLARATION,
                optional=True,
                quiet=True,
            ),
        ),
        normalize=_normalize_endpoint,
    )


def entity_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.ENTITY,
        name="spring-entity",
        files=JVM_SOURCES,
        marker=re.compile(r"^\s*@(?:Entity|Document)\b"),
        naming=NameStrategy.FOLLOWING,
        window=window,
        identity="entity:{name}",
        attributes=(
            AttributeExtractor.of(
                "tableName",
                r"@Table\s*\([^)]*?\bname\s*=\s*\"([^\"]*)\"",
                r"@Document\s*\(\s*(?:collection\s*=\s*)?\"([^\"]*)\"",
                r"@Document\s*\([^)]*?\bcollection\s*=\s*\"([^\"]*)\"",
                scope=Scope.DECLARATION,
                optional=True,
            ),
            AttributeExtractor.of("store", r"@(Entity|Document)\b"),
        ),
        normalize=_normalize_entity,
    )


def kafka_consumer_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.KAFKA_CONSUMER,
        name="spring-kafka-listener",
        files=JVM_SOURCES,
        marker=re.compile(r"@KafkaListener\b"),
        naming=NameStrategy.ENCLOSING,
        window=window,
        identity="kafka-consumer:{name}#{topic}",
        attributes=(
            AttributeExtractor.of(
                "topic",
                rf"\btopics\s*=\s*({_ARRAY}|{_QUOTED}|{_CONSTANT})",
                rf"\btopicPattern\s*=\s*\"([^\"]*)\"",
                scope=Scope.STATEMENT,
            ),
            AttributeExtractor.of(
                "groupId",
                r"\bgroupId\s*=\s*\"([^\"]*)\"",
                scope=Scope.STATEMENT,
                optional=True,
            ),
        ),
        normalize=_normalize_kafka_consumer,
    )


def kafka_producer_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.KAFKA_PRODUCER,
        name="spring-kafka-template",
        files=JVM_SOURCES,
        requires=re.compile(r"\bKafkaTemplate\b"),
        marker=re.compile(r"\w*[tT]emplate\s*\.\s*send(?:Default)?\s*\("),
        naming=NameStrategy.ENCLOSING,
        window=window,
        identity="kafka-producer:{name}#{topic}",
        attributes=(
            AttributeExtractor.of(
                "topic",
                r"\.send\s*\(\s*\"([^\"]*)\"",
                r"ProducerRecord\s*(?:<[^>]*>)?\s*\(\s*\"([^\"]*)\"",
                r"\.send\s*\(\s*([A-Z][A-Z0-9_]*(?:\.[A-Z][A-Z0-9_]*)*)\s*[,)]",
                scope=Scope.STATEMENT,
            ),
        ),
    )


def feign_client_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.FEIGN_CLIENT,
        name="spring-feign-client",
        files=JVM_SOURCES,
        marker=re.compile(r"^\s*@FeignClient\b"),
        naming=NameStrategy.FOLLOWING,
        window=window,
        identity="feign:{name}",
        attributes=(
            AttributeExtractor.of(
                "serviceName",
                r"\b(?:name|value)\s*=\s*\"([^\"]*)\"",
                r"@FeignClient\s*\(\s*\"([^\"]*)\"",
                scope=Scope.STATEMENT,
            ),
            AttributeExtractor.of(
                "url",
                r"\burl\s*=\s*\"([^\"]*)\"",
                scope=Scope.STATEMENT,
                optional=True,
            ),
        ),
    )


def http_client_rule(window: int = 5) -> DetectionRule:
    """RestTemplate, WebClient and RestClient collaborators injected into a class."""
    return DetectionRule(
        kind=FactKind.HTTP_CLIENT,
        name="spring-http-client",
        files=JVM_SOURCES,
        requires=re.compile(rf"\b(?:{_HTTP_CLIENT_TYPES})\b"),
        marker=re.compile(
            rf"\b(?:{_HTTP_CLIENT_TYPES})(?:\.Builder)?\s+\w+\s*[;=,)]"
            rf"|\b\w+\s*:\s*(?:{_HTTP_CLIENT_TYPES})(?:\.Builder)?\b"
        ),
        naming=NameStrategy.ENCLOSING,
        window=window,
        identity="http-client:{name}#{client}",
        attributes=(
            AttributeExtractor.of("client", rf"\b({_HTTP_CLIENT_TYPES})\b"),
            AttributeExtractor.of(
                "baseUrl",
                r"\.baseUrl\s*\(\s*\"([^\"]*)\"",
                r"\.rootUri\s*\(\s*\"([^\"]*)\"",
                scope=Scope.STATEMENT,
                optional=True,
                quiet=True,
            ),
        ),
    )


def exception_class_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.EXCEPTION_CLASS,
        name="jvm-exception-class",
        files=EXCEPTION_SOURCES,
        marker=re.compile(r"\bclass\s+(?P<name>[A-Z]\w*(?:Exception|Error))\b"),
        naming=NameStrategy.CAPTURE,
        window=window,
        identity="exception:{name}",
        attributes=(
            AttributeExtractor.of(
                "parent",
                r"\bclass\s+\w+(?:\s*<[^>]*>)?\s+extends\s+([\w.]+)",
                r"\bclass\s+\w+\s*(?:\([^)]*\))?\s*:\s*([\w.]+)",
                r"^\s*extends\s+([\w.]+)",
                r"^\s*\)?\s*:\s*([\w.]+)\s*\(",
                scope=Scope.WINDOW,
                after=2,
                optional=True,
            ),
            AttributeExtractor.of(
                "responseStatus",
                r"@ResponseStatus\s*\(\s*(?:(?:code|value)\s*=\s*)?HttpStatus\.([A-Z_]+)",
                scope=Scope.DECLARATION,
                optional=True,
                quiet=True,
            ),
        ),
        normalize=_normalize_exception_class,
    )


def exception_handler_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.EXCEPTION_CLASS,
        name="spring-exception-handler",
        files=JVM_SOURCES,
        requires=re.compile(r"@(?:Rest)?ControllerAdvice\b"),
        marker=re.compile(r"@ExceptionHandler\b"),
        naming=NameStrategy.ENCLOSING,
        window=window,
        identity="exception-handler:{name}#{exception}",
        attributes=(
            AttributeExtractor.of(
                "exception",
                rf"@ExceptionHandler\s*\(\s*(?:value\s*=\s*)?({_ARRAY}|[\w.:]+)",
                scope=Scope.STATEMENT,
                optional=True,
            ),
            AttributeExtractor.of(
                "parameter",
                r"\(\s*(?:final\s+)?(?:@\w+\s+)*([A-Z]\w*(?:Exception|Error))\s+\w+",
                r"\(\s*\w+\s*:\s*([A-Z]\w*(?:Exception|Error))\b",
                scope=Scope.WINDOW,
                after=3,
                optional=True,
                quiet=True,
            ),
            AttributeExtractor.of(
                "status",
                r"HttpStatus\.([A-Z_]+)",
                scope=Scope.WINDOW,
                before=1,
                after=4,
                optional=True,
            ),
        ),
        normalize=_normalize_exception_handler,
    )


def service_class_rule(window: int = 5) -> DetectionRule:
    return DetectionRule(
        kind=FactKind.SERVICE_CLASS,
        name="spring-service",
        files=JVM_SOURCES,
        marker=re.compile(r"^\s*@Service\b"),
        naming=NameStrategy.FOLLOWING,
        window=window,
        identity="service:{name}",
        attributes=(
            AttributeExtractor.of(
                "publicMethods",
                _PUBLIC_JAVA_METHOD,
                _PUBLIC_KOTLIN_FUN,
                scope=Scope.FILE,
                optional=True,
                collect=True,
            ),
        ),
    )


def spring_rules(window: int = 5) -> List[DetectionRule]:
    """Return every built-in JVM source rule."""
    return [
        endpoint_rule(window),
        entity_rule(window),
        kafka_consumer_rule(window),
        kafka_producer_rule(window),
        feign_client_rule(window),
        http_client_rule(window),
        exception_class_rule(window),
        exception_handler_rule(window),
        service_class_rule(window),
    ]


# ---------------------------------------------------------------------------
# Attribute normalizers
# ---------------------------------------------------------------------------


def _normalize_endpoint(attributes: Attributes) -> Optional[List[Attributes]]:
    methods = [method_upper(method) for method in split_list(attributes.get("httpMethod", ""))]
    if not methods:
        # Class-level or verb-less @RequestMapping: not an endpoint on its own.
        return None
    bases = split_list(attributes.get("basePath", "")) or [""]
    routes = split_list(attributes.get("path", "")) or [""]
    # Every (verb, path) pair a mapping declares is its own endpoint.
    return [
        {
            "httpMethod": method,
            "path": join_paths(base, route),
            "basePath": normalize_path(base) if base else "",
        }
        for base in bases
        for route in routes
        for method in methods
    ]


def _normalize_entity(attributes: Attributes) -> Attributes:
    return {
        "tableName": attributes.get("tableName", ""),
        "store": _STORE_BY_ANNOTATION.get(attributes.get("store", ""), ""),
    }


def _normalize_kafka_consumer(attributes: Attributes) -> Attributes:
    return {
        "topic": ",".join(split_list(attributes.get("topic", ""))),
        "groupId": attributes.get("groupId", ""),
    }


def _normalize_exception_class(attributes: Attributes) -> Attributes:
    parent = attributes.get("parent", "")
    simple_parent = parent.rsplit(".", 1)[-1]
    return {
        "parent": parent,
        "root": "true" if simple_parent in _STANDARD_EXCEPTIONS else "false",
        "responseStatus": attributes.get("responseStatus", ""),
    }


def _normalize_exception_handler(attributes: Attributes) -> Attributes:
    handled = split_list(attributes.get("exception", "")) or split_list(
        attributes.get("parameter", "")
    )
    return {
        "exception": ",".join(handled),
        "status": attributes.get("status", ""),
    }


__all__ = [
    "endpoint_rule",
    "entity_rule",
    "exception_class_rule",
    "exception_handler_rule",
    "feign_client_rule",
    "http_client_rule",
    "kafka_consumer_rule",
    "kafka_producer_rule",
    "service_class_rule",
    "spring_rules",
]
