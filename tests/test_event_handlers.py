"""Tests for EventHandlerRegistry registration and dispatch."""

from src.exceptions import NotificationException


def test_register_ignores_duplicates(handler_registry):
    handler_registry.clear()

    def handler(payload):
        pass

    handler_registry.register("offer.applied", handler)
    handler_registry.register("offer.applied", handler)

    assert handler_registry.get_handlers("offer.applied") == [handler]
    assert handler_registry.get_handlers("offer.accepted") == []


def test_on_registers_for_every_event_type(handler_registry):
    handler_registry.clear()

    @handler_registry.on("offer.accepted", "offer.rejected")
    def reviewed(payload):
        pass

    assert handler_registry.get_handlers("offer.accepted") == [reviewed]
    assert handler_registry.get_handlers("offer.rejected") == [reviewed]


def test_dispatch_runs_all_handlers_despite_failures(handler_registry):
    handler_registry.clear()
    calls = []

    def unreachable(payload):
        raise NotificationException("no recipient")

    def broken(payload):
        raise KeyError("order_number")

    def recorder(payload):
        calls.append(payload)

    for handler in (unreachable, broken, recorder):
        handler_registry.register("application.created", handler)

    results = handler_registry.dispatch("application.created", {"order_number": "ORD-2026-000001"})

    assert [(r["handler"], r["status"]) for r in results] == [
        ("unreachable", "error"),
        ("broken", "error"),
        ("recorder", "ok"),
    ]
    assert results[0]["error"] == "no recipient"
    assert calls == [{"order_number": "ORD-2026-000001"}]
