"""Tests for the built-in Spring detection rules."""

from __future__ import annotations

import pytest

from docfacts.models import FactKind
from docfacts.rules import discover_rules
from docfacts.rules.paths import join_paths, normalize_path, split_list
from docfacts.rules.spring import (
    endpoint_rule,
    entity_rule,
    exception_class_rule,
    exception_handler_rule,
    feign_client_rule,
    http_client_rule,
    kafka_consumer_rule,
    kafka_producer_rule,
    service_class_rule,
    spring_rules,
)
from tests._fixtures.repo_builder import RepoBuilder


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", "/"),
        ("users", "/users"),
        ("/users/", "/users"),
        ("//users//{id}", "/users/{id}"),
        ("/users/{id:\\d+}", "/users/{id}"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_join_paths_handles_empty_sides() -> None:
    assert join_paths("", "/health") == "/health"
    assert join_paths("/api/", "") == "/api"
    assert join_paths("/api", "items/") == "/api/items"


def test_split_list_strips_class_literals() -> None:
    assert split_list('{"a", "b", "a"}') == ["a", "b"]
    assert split_list("{FooException.class, BarException.class}") == ["FooException", "BarException"]
    assert split_list("[Foo::class]") == ["Foo"]
    assert split_list('{"${app.topic}", "b"}') == ["${app.topic}", "b"]


def test_endpoint_rule_requires_controller_file(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "StockClient.java": """
            public interface StockClient {
                @GetMapping("/stock")
                int stock();
            }
            """
        }
    )

    assert len(repo_builder.extract([endpoint_rule()]).store) == 0


def test_endpoint_rule_reads_request_mapping_arrays(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "HealthController.java": """
            @Controller
            @RequestMapping(path = {"/internal"})
            public class HealthController {
                @RequestMapping(
                    value = "/ping",
                    method = RequestMethod.HEAD)
                public void ping() {
                }

                @PutMapping(value = {"/level"}, consumes = "application/json")
                public void level() {
                }
            }
            """
        }
    )

    store = repo_builder.extract([endpoint_rule()]).store

    assert store.identities() == frozenset(
        {
            "controller:HealthController#HEAD:/internal/ping",
            "controller:HealthController#PUT:/internal/level",
        }
    )


def test_entity_rule_detects_mongo_documents(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "AuditEntry.java": """
            import org.springframework.data.mongodb.core.mapping.Document;

            @Document("audit_entries")
            public class AuditEntry {
            }
            """,
            "Tag.java": """
            @Entity
            public class Tag {
            }
            """,
        }
    )

    store = repo_builder.extract([entity_rule()]).store

    assert dict(store.get("entity:AuditEntry").attributes) == {
        "tableName": "audit_entries",
        "store": "mongodb",
    }
    assert dict(store.get("entity:Tag").attributes) == {"tableName": "", "store": "jpa"}


def test_kafka_rules_capture_topics(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "ShipmentEvents.java": """
            public class ShipmentEvents {
                private final KafkaTemplate<String, Shipment> template;

                @KafkaListener(topics = "shipments", groupId = "billing")
                public void consume(Shipment shipment) {
                    template.send(new ProducerRecord<>("shipments.audit", shipment));
                }
            }
            """
        }
    )

    store = repo_builder.extract([kafka_consumer_rule(), kafka_producer_rule()]).store

    consumer = store.get("kafka-consumer:ShipmentEvents#shipments")
    assert consumer is not None
    assert dict(consumer.attributes) == {"topic": "shipments", "groupId": "billing"}
    assert "kafka-producer:ShipmentEvents#shipments.audit" in store


def test_feign_rule_accepts_positional_name(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "PricingClient.java": """
            @FeignClient("pricing")
            public interface PricingClient {
            }
            """
        }
    )

    fact = repo_builder.extract([feign_client_rule()]).store.get("feign:PricingClient")

    assert fact is not None
    assert dict(fact.attributes) == {"serviceName": "pricing", "url": ""}


def test_exception_handler_rule_reads_arrays_and_status(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "ApiAdvice.kt": """
            @RestControllerAdvice
            class ApiAdvice {
                @ExceptionHandler(value = [InvalidOrderException::class, MissingSkuException::class])
                fun badRequest(ex: RuntimeException): ResponseEntity<ErrorBody> =
                    ResponseEntity.status(HttpStatus.BAD_REQUEST).build()
            }
            """
        }
    )

    store = repo_builder.extract([exception_handler_rule()]).store

    fact = store.get("exception-handler:ApiAdvice#InvalidOrderException,MissingSkuException")
    assert fact is not None
    assert fact.kind is FactKind.EXCEPTION_CLASS
    assert fact.attributes["status"] == "BAD_REQUEST"


def test_service_rule_collects_public_methods(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "BillingService.kt": """
            @Service
            class BillingService(private val repository: InvoiceRepository) {
                fun charge(invoice: Invoice): Receipt = Receipt(invoice.id)
                override fun toString(): String = "billing"
                private fun audit() {}
            }
            """
        }
    )

    fact = repo_builder.extract([service_class_rule()]).store.get("service:BillingService")

    assert fact is not None
    assert fact.attributes["publicMethods"] == "charge,toString"


def test_spring_rules_cover_every_source_kind() -> None:
    kinds = {rule.kind for rule in spring_rules()}

    assert kinds == set(FactKind) - {FactKind.CONFIG_PROPERTY}


def test_discover_rules_filters_kinds() -> None:
    rules = discover_rules(["Endpoint", "kafka_consumer"])

    assert {rule.kind for rule in rules} == {FactKind.ENDPOINT, FactKind.KAFKA_CONSUMER}


def test_discover_rules_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        discover_rules(["graphql-resolver"])


def test_window_setting_bounds_statement_scope(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "SlowListener.java": """
            public class SlowListener {
                @KafkaListener(
                    id = "slow",
                    autoStartup = "true",
                    topics = "late")
                public void on(String value) {
                }
            }
            """
        }
    )

    narrow = repo_builder.extract([kafka_consumer_rule(window=1)])
    wide = repo_builder.extract([kafka_consumer_rule(window=5)])

    assert "kafka-consumer:SlowListener#" in narrow.store
    assert [warning.reason for warning in narrow.warnings] == [
        "missing-attribute",
        "absent-optional-attribute",
    ]
    assert "kafka-consumer:SlowListener#late" in wide.store


def test_endpoint_rule_emits_one_fact_per_method_and_path(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "LegacyController.java": """
            @RestController
            public class LegacyController {
                @RequestMapping(value = "/x", method = {RequestMethod.GET, RequestMethod.POST})
                public String both() {
                    return "";
                }

                @GetMapping({"/a", "/b"})
                public String aliases() {
                    return "";
                }
            }
            """
        }
    )

    result = repo_builder.extract([endpoint_rule()])

    assert result.store.identities() == frozenset(
        {
            "controller:LegacyController#GET:/x",
            "controller:LegacyController#POST:/x",
            "controller:LegacyController#GET:/a",
            "controller:LegacyController#GET:/b",
        }
    )
    assert dict(result.store.get("controller:LegacyController#POST:/x").attributes) == {
        "httpMethod": "POST",
        "path": "/x",
        "basePath": "",
    }
    assert result.warnings == ()


def test_endpoint_rule_fans_out_class_level_paths(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "VersionedController.java": """
            @RestController
            @RequestMapping({"/v1/items", "/v2/items"})
            public class VersionedController {
                @DeleteMapping("/{id}")
                public void remove(@PathVariable Long id) {
                }
            }
            """
        }
    )

    store = repo_builder.extract([endpoint_rule()]).store

    assert store.identities() == frozenset(
        {
            "controller:VersionedController#DELETE:/v1/items/{id}",
            "controller:VersionedController#DELETE:/v2/items/{id}",
        }
    )
    assert store.get("controller:VersionedController#DELETE:/v2/items/{id}").attributes[
        "basePath"
    ] == "/v2/items"


def test_kafka_listener_reads_topic_constants(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "EventListeners.java": """
            public class EventListeners {
                @KafkaListener(topics = Topics.ORDERS, groupId = "g")
                public void onOrder(String payload) {
                }

                @KafkaListener(topics = Topics.PAYMENTS, groupId = "g")
                public void onPayment(String payload) {
                }

                @KafkaListener(topics = {Topics.REFUNDS, AUDIT_TOPIC}, groupId = "g")
                public void onRefund(String payload) {
                }
            }
            """
        }
    )

    result = repo_builder.extract([kafka_consumer_rule()])

    assert result.store.identities() == frozenset(
        {
            "kafka-consumer:EventListeners#Topics.ORDERS",
            "kafka-consumer:EventListeners#Topics.PAYMENTS",
            "kafka-consumer:EventListeners#Topics.REFUNDS,AUDIT_TOPIC",
        }
    )
    assert result.warnings == ()


def test_topic_placeholders_keep_their_closing_brace(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "OrderEvents.java": """
            public class OrderEvents {
                @KafkaListener(topics = {"${app.kafka.orders}"}, groupId = "orders")
                public void on(String payload) {
                }
            }
            """
        }
    )

    store = repo_builder.extract([kafka_consumer_rule()]).store

    fact = store.get("kafka-consumer:OrderEvents#${app.kafka.orders}")
    assert fact is not None
    assert dict(fact.attributes) == {"topic": "${app.kafka.orders}", "groupId": "orders"}


def test_exception_handler_rule_reads_java_brace_arrays(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "ApiErrors.java": """
            @ControllerAdvice
            public class ApiErrors {
                @ExceptionHandler({OrderNotFoundException.class, PaymentFailedException.class})
                public ResponseEntity<String> handle(RuntimeException ex) {
                    return ResponseEntity.status(HttpStatus.UNPROCESSABLE_ENTITY).build();
                }
            }
            """
        }
    )

    store = repo_builder.extract([exception_handler_rule()]).store

    assert store.identities() == frozenset(
        {"exception-handler:ApiErrors#OrderNotFoundException,PaymentFailedException"}
    )


def test_http_client_rule_detects_rest_template_and_web_client(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "PricingGateway.java": """
            import org.springframework.web.client.RestTemplate;

            @Service
            public class PricingGateway {
                private final RestTemplate restTemplate;
                private final WebClient webClient = WebClient.builder().baseUrl("https://pricing.internal").build();

                public PricingGateway(RestTemplate restTemplate) {
                    this.restTemplate = restTemplate;
                }
            }
            """
        }
    )

    result = repo_builder.extract([http_client_rule()])

    assert result.store.identities() == frozenset(
        {"http-client:PricingGateway#RestTemplate", "http-client:PricingGateway#WebClient"}
    )
    assert dict(result.store.get("http-client:PricingGateway#WebClient").attributes) == {
        "client": "WebClient",
        "baseUrl": "https://pricing.internal",
    }
    assert result.store.get("http-client:PricingGateway#RestTemplate").attributes["baseUrl"] == ""
    assert result.warnings == ()


def test_http_client_rule_reads_kotlin_properties(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "ShippingClient.kt": """
            @Component
            class ShippingClient(private val restClient: RestClient) {
                fun track(id: String): String = restClient.get().uri("/track/{id}", id).retrieve().body()
            }
            """
        }
    )

    store = repo_builder.extract([http_client_rule()]).store

    assert store.identities() == frozenset({"http-client:ShippingClient#RestClient"})


def test_exception_class_rule_reads_response_status(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "DuplicateOrderException.java": """
            @ResponseStatus(HttpStatus.CONFLICT)
            public class DuplicateOrderException extends RuntimeException {
            }
            """,
            "QuotaExceededException.java": """
            @ResponseStatus(code = HttpStatus.TOO_MANY_REQUESTS, reason = "quota")
            public class QuotaExceededException extends DuplicateOrderException {
            }
            """,
        }
    )

    store = repo_builder.extract([exception_class_rule()]).store

    assert dict(store.get("exception:DuplicateOrderException").attributes) == {
        "parent": "RuntimeException",
        "root": "true",
        "responseStatus": "CONFLICT",
    }
    assert dict(store.get("exception:QuotaExceededException").attributes) == {
        "parent": "DuplicateOrderException",
        "root": "false",
        "responseStatus": "TOO_MANY_REQUESTS",
    }
