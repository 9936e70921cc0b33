"""Telemetry and observability helpers for gateway calls."""

from .logger import GatewayLogger

__all__ = ["GatewayLogger"]
