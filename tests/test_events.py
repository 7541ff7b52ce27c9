"""HealingEventBus dispatch semantics."""
from unittest.mock import MagicMock

from healing.events import HealingEventBus, EVENT_RECOVERY_STARTED, EVENT_RECOVERY_FAILED


class TestEventBus:

    def test_handlers_called_in_registration_order(self):
        bus = HealingEventBus()
        calls = []
        bus.on(EVENT_RECOVERY_STARTED, lambda p: calls.append(("a", p)))
        bus.on(EVENT_RECOVERY_STARTED, lambda p: calls.append(("b", p)))

        bus.emit(EVENT_RECOVERY_STARTED, 1)

        assert calls == [("a", 1), ("b", 1)]

    def test_off_removes_handler(self):
        bus = HealingEventBus()
        handler = MagicMock()
        bus.on(EVENT_RECOVERY_FAILED, handler)
        bus.off(EVENT_RECOVERY_FAILED, handler)
        bus.off(EVENT_RECOVERY_FAILED, handler)
        bus.emit(EVENT_RECOVERY_FAILED, {})
        handler.assert_not_called()

    def test_exception_isolated(self):
        bus = HealingEventBus()
        after = MagicMock()
        bus.on(EVENT_RECOVERY_STARTED, MagicMock(side_effect=Exception("bad")))
        bus.on(EVENT_RECOVERY_STARTED, after)

        bus.emit(EVENT_RECOVERY_STARTED, "payload")

        after.assert_called_once_with("payload")

    def test_clear_removes_everything(self):
        bus = HealingEventBus()
        handler = MagicMock()
        bus.on(EVENT_RECOVERY_STARTED, handler)
        bus.on("custom:event", handler)
        bus.clear()
        bus.emit(EVENT_RECOVERY_STARTED)
        bus.emit("custom:event")
        handler.assert_not_called()

    def test_emit_without_handlers(self):
        HealingEventBus().emit("nobody:listens", None)

    def test_engine_remove_all_listeners(self, engine):
        handler = MagicMock()
        engine.on("metrics:updated", handler)
        engine.remove_all_listeners()
        engine.get_metrics()
        handler.assert_not_called()

    def test_engine_off(self, engine):
        handler = MagicMock()
        engine.on("metrics:updated", handler)
        engine.off("metrics:updated", handler)
        engine.get_metrics()
        handler.assert_not_called()
