"""Tests for docfacts.report."""

from __future__ import annotations

from pathlib import Path

from docfacts.models import ChangeCategory, FactChange, FactKind, FactStore, SourceFact
from docfacts.profile import ProjectProfile
from docfacts.report import ReportRenderer, summarize_changes, to_payload
from docfacts.rules import ExtractionError
from docfacts.session import SessionMode, SessionOutcome, SessionStatus


def _fact(kind: FactKind, identity: str, **attributes: str) -> SourceFact:
    return SourceFact(kind=kind, identity=identity, attributes=attributes)


def _incremental_outcome() -> SessionOutcome:
    old_entity = _fact(FactKind.ENTITY, "entity:Order", table="orders", store="jpa")
    new_entity = _fact(FactKind.ENTITY, "entity:Order", table="customer_orders", store="jpa")
    first = _fact(FactKind.ENDPOINT, "endpoint:GET /a", method="GET")
    second = _fact(FactKind.ENDPOINT, "endpoint:GET /b", method="GET")
    store = FactStore.from_facts("/repo", [new_entity, first, second], extracted_at="2026-01-01T00:00:00Z")
    return SessionOutcome(
        status=SessionStatus.COMPLETED,
        requested_mode=SessionMode.INCREMENTAL,
        mode=SessionMode.INCREMENTAL,
        root=Path("/repo"),
        store=store,
        previous_source="snapshot /repo/.docfacts/snapshot.json",
        changes=(
            FactChange("endpoint:GET /a", ChangeCategory.ADDED, FactKind.ENDPOINT, after=first),
            FactChange("endpoint:GET /b", ChangeCategory.ADDED, FactKind.ENDPOINT, after=second),
            FactChange(
                "entity:Order", ChangeCategory.MODIFIED, FactKind.ENTITY, before=old_entity, after=new_entity
            ),
        ),
        impacted_sections=("claude-md", "api-reference", "domain-model"),
    )


def test_summarize_changes_orders_by_category_then_kind() -> None:
    assert summarize_changes(_incremental_outcome().changes) == [
        "2 new endpoints",
        "1 modified entity",
    ]


def test_render_incremental_summary() -> None:
    text = ReportRenderer().render(_incremental_outcome())

    assert text.startswith("docfacts incremental analysis of /repo")
    assert "Compared against snapshot /repo/.docfacts/snapshot.json" in text
    assert "Facts (3):" in text
    assert "I detected 2 new endpoints, 1 modified entity." in text
    assert "entity:Order (table)" in text
    assert "  - api-reference" in text


def test_render_failed_outcome() -> None:
    outcome = SessionOutcome(
        status=SessionStatus.FAILED,
        requested_mode=SessionMode.FULL,
        mode=SessionMode.FULL,
        root=Path("/missing"),
        error=ExtractionError("/missing", "root does not exist"),
    )

    text = ReportRenderer().render(outcome)

    assert "analysis failed for /missing" in text
    assert "root does not exist: /missing" in text
    assert to_payload(outcome)["error"] == {"path": "/missing", "reason": "root does not exist"}


def test_custom_templates_directory_overrides_default(tmp_path: Path) -> None:
    (tmp_path / "summary.j2").write_text("{{ total }} facts in {{ sections|length }} sections\n", encoding="utf-8")

    text = ReportRenderer(templates_dir=tmp_path).render(_incremental_outcome())

    assert text == "3 facts in 3 sections\n"


def test_payload_lists_changes_with_changed_attributes() -> None:
    payload = to_payload(_incremental_outcome())

    assert payload["version"] == 1
    assert [fact["identity"] for fact in payload["facts"]] == [
        "endpoint:GET /a",
        "endpoint:GET /b",
        "entity:Order",
    ]
    modified = payload["changes"][2]
    assert modified["category"] == "modified"
    assert modified["changed_attributes"] == ["table"]
    assert payload["summary"] == ["2 new endpoints", "1 modified entity"]


def test_render_includes_project_profile() -> None:
    outcome = _incremental_outcome()
    outcome.profile = ProjectProfile(
        build_tool="gradle",
        build_file="build.gradle.kts",
        java_version="17",
        spring_boot_version="3.3.0",
        spring_features=("Apache Kafka", "Spring Data JPA"),
        test_frameworks=("Spring Boot Test",),
        unit_tests=4,
        integration_tests=1,
    )

    text = ReportRenderer().render(outcome)

    assert "  build: gradle (build.gradle.kts)" in text
    assert "  Spring Boot: 3.3.0" in text
    assert "  libraries: Apache Kafka, Spring Data JPA" in text
    assert "  testing: Spring Boot Test (4 unit, 1 integration)" in text
    assert to_payload(outcome)["profile"]["java_version"] == "17"
