"""Sample Spring sources shared by extraction and session tests."""

from __future__ import annotations

ORDER_CONTROLLER = """
package com.example.orders.web;

import org.springframework.web.bind.annotation.*;

@RestController
@RequestMapping("/api/orders")
public class OrderController {

    @GetMapping("/{id:[0-9]+}")
    public OrderDto get(@PathVariable Long id) {
        return service.find(id);
    }

    @PostMapping
    public OrderDto create(@RequestBody OrderDto order) {
        return service.create(order);
    }

    @RequestMapping(value = "/search", method = RequestMethod.GET)
    public List<OrderDto> search(@RequestParam String q) {
        return service.search(q);
    }
}
"""

ORDER_ENTITY = """
package com.example.orders.domain;

import jakarta.persistence.*;

@Entity
@Table(name = "orders")
public class Order {
    @Id
    private Long id;
}
"""

CUSTOMER_DOCUMENT = """
package com.example.orders.domain;

@Document(collection = "customers")
public class Customer {
    private String id;
}
"""

PAYMENT_LISTENER = """
package com.example.orders.messaging;

@Component
public class PaymentListener {

    @KafkaListener(topics = {"payments", "refunds"},
                   groupId = "orders")
    public void onPayment(String payload) {
    }
}
"""

ORDER_PUBLISHER = """
package com.example.orders.messaging;

import org.springframework.kafka.core.KafkaTemplate;

@Component
public class OrderPublisher {
    private static final String ORDER_EVENTS = "order-events";
    private final KafkaTemplate<String, String> kafkaTemplate;

    public void publish(String payload) {
        kafkaTemplate.send("orders.created", payload);
    }

    public void publishEvent(String payload) {
        kafkaTemplate.send(ORDER_EVENTS, payload);
    }
}
"""

INVENTORY_CLIENT = """
package com.example.orders.clients;

@FeignClient(name = "inventory-service", url = "${inventory.url}")
public interface InventoryClient {
    @GetMapping("/stock/{sku}")
    int stock(@PathVariable String sku);
}
"""

ORDER_NOT_FOUND = """
package com.example.orders.errors;

public class OrderNotFoundException extends RuntimeException {
    public OrderNotFoundException(Long id) {
        super("Order " + id + " not found");
    }
}
"""

GLOBAL_HANDLER = """
package com.example.orders.errors;

@RestControllerAdvice
public class GlobalExceptionHandler {

    @ExceptionHandler(OrderNotFoundException.class)
    @ResponseStatus(HttpStatus.NOT_FOUND)
    public ErrorResponse handleNotFound(OrderNotFoundException ex) {
        return new ErrorResponse(ex.getMessage());
    }
}
"""

ORDER_SERVICE = """
package com.example.orders.service;

@Service
public class OrderService {

    public OrderService(OrderRepository repository) {
        this.repository = repository;
    }

    public OrderDto find(Long id) {
        return null;
    }

    public List<OrderDto> search(String query) {
        return List.of();
    }

    private void audit() {
    }
}
"""

APPLICATION_YML = """
server:
  port: 8080
spring:
  kafka:
    bootstrap-servers: localhost:9092
  datasource:
    url: jdbc:postgresql://localhost/orders
"""

APPLICATION_DEV_PROPERTIES = """
# development overrides
server.port=8081
feature.audit.enabled = true
"""

SPRING_PROJECT = {
    "src/main/java/com/example/orders/web/OrderController.java": ORDER_CONTROLLER,
    "src/main/java/com/example/orders/domain/Order.java": ORDER_ENTITY,
    "src/main/java/com/example/orders/domain/Customer.java": CUSTOMER_DOCUMENT,
    "src/main/java/com/example/orders/messaging/PaymentListener.java": PAYMENT_LISTENER,
    "src/main/java/com/example/orders/messaging/OrderPublisher.java": ORDER_PUBLISHER,
    "src/main/java/com/example/orders/clients/InventoryClient.java": INVENTORY_CLIENT,
    "src/main/java/com/example/orders/errors/OrderNotFoundException.java": ORDER_NOT_FOUND,
    "src/main/java/com/example/orders/errors/GlobalExceptionHandler.java": GLOBAL_HANDLER,
    "src/main/java/com/example/orders/service/OrderService.java": ORDER_SERVICE,
    "src/main/resources/application.yml": APPLICATION_YML,
    "src/main/resources/application-dev.properties": APPLICATION_DEV_PROPERTIES,
}
