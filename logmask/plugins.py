"""
Masking plugins - pre/post hooks around MaskingEngine.

A plugin can contribute patterns and field rules at build time (see
MaskingEngineBuilder.add_plugin) and rewrite the message or context right
before and right after the engine runs.

Hook order:
    pre_process_*   ascending priority (lower number runs first)
    post_process_*  descending priority (mirror image of the pre hooks)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator

from .engine import MaskingEngine
from .fields import FieldMaskConfig
from .records import Record
from .sanitize import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_PRIORITY = 100


class MaskingPlugin(ABC):
    """
    Base class for masking plugins. Every hook defaults to a no-op.

    Example:
        class TicketPlugin(MaskingPlugin):
            @property
            def name(self) -> str:
                return "tickets"

            def get_patterns(self) -> dict[str, str]:
                return {"/TICKET-\\d+/": "TICKET-***"}

            def pre_process_message(self, message: str) -> str:
                return message.strip()
    """

    def __init__(self, priority: int = DEFAULT_PLUGIN_PRIORITY):
        self.priority = priority

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier, used in log messages."""
        pass

    def pre_process_message(self, message: str) -> str:
        return message

    def post_process_message(self, message: str) -> str:
        return message

    def pre_process_context(self, context: dict[str, Any]) -> dict[str, Any]:
        return context

    def post_process_context(self, context: dict[str, Any]) -> dict[str, Any]:
        return context

    def get_patterns(self) -> dict[str, str]:
        """Patterns merged into the engine configuration by the builder."""
        return {}

    def get_field_configs(self) -> dict[str, FieldMaskConfig]:
        """Field rules merged into the engine configuration by the builder."""
        return {}

    def __repr__(self) -> str:
        return f"<MaskingPlugin: {self.name} (priority {self.priority})>"


def sort_plugins(plugins: Iterable[MaskingPlugin]) -> list[MaskingPlugin]:
    """Ascending priority; equal priorities keep their registration order."""
    return sorted(plugins, key=lambda plugin: plugin.priority)


class PluginAwareEngine:
    """
    Runs plugin hooks around a MaskingEngine.

    A hook that raises is logged and skipped; the value it was given is
    passed on unchanged.

    Args:
        engine: The engine doing the actual masking.
        plugins: Plugins in any order; they are sorted by priority.
    """

    def __init__(self, engine: MaskingEngine, plugins: Iterable[MaskingPlugin]):
        self.engine = engine
        self.plugins = sort_plugins(plugins)

    def process(self, record: Record) -> Record:
        message = record.message
        context = record.context
        for plugin in self.plugins:
            message = self._run_hook(plugin, "pre_process_message", message)
        for plugin in self.plugins:
            context = self._run_hook(plugin, "pre_process_context", context)

        processed = self.engine.process(record.with_(message=message, context=context))

        message = processed.message
        context = processed.context
        for plugin in reversed(self.plugins):
            message = self._run_hook(plugin, "post_process_message", message)
        for plugin in reversed(self.plugins):
            context = self._run_hook(plugin, "post_process_context", context)

        return processed.with_(message=message, context=context)

    def __call__(self, record: Record) -> Record:
        return self.process(record)

    def process_many(self, records: Iterable[Record]) -> Iterator[Record]:
        for record in records:
            yield self.process(record)

    @staticmethod
    def _run_hook(plugin: MaskingPlugin, hook: str, value: Any) -> Any:
        try:
            return getattr(plugin, hook)(value)
        except Exception as e:
            logger.warning(f"Plugin '{plugin.name}' {hook} failed: {sanitize_error_message(str(e))}")
            return value

    # Passthroughs to the wrapped engine

    def mask_message(self, text: str) -> str:
        return self.engine.mask_message(text)

    def recursive_mask(self, value: Any, depth: int = 0) -> Any:
        return self.engine.recursive_mask(value, depth)

    def set_audit_logger(self, audit_logger: Any) -> None:
        self.engine.set_audit_logger(audit_logger)
