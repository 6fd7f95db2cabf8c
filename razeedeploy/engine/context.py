import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

DEFAULT_NAMESPACE = "razeedeploy"
DEFAULT_REGISTRY = "quay.io/razee/"


@dataclass
class DeployContext:
    client: Any
    namespace: str = DEFAULT_NAMESPACE
    registry: Optional[str] = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def call(self, fn, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn, *args)
