"""Core module: config, engine, hooks, CLI."""

from tom.core.config import TomConfig, load_config
from tom.core.engine import TomEngine
from tom.core.hooks import HookEvent, HookManager

__all__ = ["HookEvent", "HookManager", "TomConfig", "TomEngine", "load_config"]
