"""
Relógio injetável usado pelos laços de polling.

Os serviços nunca chamam ``time``/``asyncio.sleep`` diretamente: recebem um
``Clock`` e os testes substituem por um relógio virtual.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Fonte de tempo monotônico e de suspensão cooperativa."""

    @abstractmethod
    def monotonic(self) -> float:
        """Segundos de um relógio monotônico."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspende a corrotina atual sem bloquear o event loop."""


class SystemClock(Clock):
    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


system_clock = SystemClock()

__all__ = ["Clock", "SystemClock", "system_clock"]
