"""Tests for configuration-file detection rules."""

from __future__ import annotations

import pytest

from docfacts.models import FactKind
from docfacts.rules import RuleInputError
from docfacts.rules.config_files import config_rules, flatten_yaml
from tests._fixtures.repo_builder import RepoBuilder


def test_flatten_yaml_builds_dotted_keys_with_lines() -> None:
    lines = flatten_yaml(
        "server:\n"
        "  port: 8080\n"
        "management:\n"
        "  endpoints:\n"
        "    include:\n"
        "      - health\n"
        "      - info\n"
    )

    assert lines == [
        (2, "server.port=8080"),
        (6, "management.endpoints.include[0]=health"),
        (7, "management.endpoints.include[1]=info"),
    ]


def test_flatten_yaml_handles_nulls_and_multiline_values() -> None:
    lines = flatten_yaml("banner:\nmotd: |\n  hello\n  world\n")

    assert [text for _, text in lines] == ["banner=", "motd=hello\\nworld\\n"]


def test_flatten_yaml_reads_every_document() -> None:
    lines = flatten_yaml("a: 1\n---\nb: 2\n")

    assert [text for _, text in lines] == ["a=1", "b=2"]


def test_flatten_yaml_rejects_invalid_documents() -> None:
    with pytest.raises(RuleInputError):
        flatten_yaml("key: [unterminated\n")


def test_config_rules_assign_profiles(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/main/resources/application.properties": """
            ! legacy comment
            spring.application.name=orders
            spring.main.banner-mode: off
            """,
            "src/main/resources/application-prod.yaml": """
            spring:
              application:
                name: orders-prod
            """,
            "src/main/resources/bootstrap.yml": "spring.cloud.config.enabled: false\n",
            "src/main/resources/logback.yml": "level: debug\n",
        }
    )

    store = repo_builder.extract(config_rules()).store

    assert store.identities() == frozenset(
        {
            "config:default:spring.application.name",
            "config:default:spring.main.banner-mode",
            "config:prod:spring.application.name",
            "config:default:spring.cloud.config.enabled",
        }
    )
    prod = store.get("config:prod:spring.application.name")
    assert prod.kind is FactKind.CONFIG_PROPERTY
    assert dict(prod.attributes) == {"value": "orders-prod", "profile": "prod"}
    assert store.get("config:default:spring.main.banner-mode").attributes["value"] == "off"
    assert store.get("config:default:spring.cloud.config.enabled").attributes["value"] == "false"


def test_repeated_yaml_keys_across_documents_collide(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"application.yml": "server:\n  port: 8080\n---\nserver:\n  port: 9090\n"})

    result = repo_builder.extract(config_rules())

    assert result.store.get("config:default:server.port").attributes["value"] == "8080"
    assert [warning.reason for warning in result.warnings] == ["identity-collision"]
