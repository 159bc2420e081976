"""Mutation-aware batch execution of tool calls.

Read-only tools run concurrently up to ``max_concurrent_reads``; mutating
tools run at most ``max_concurrent_writes`` at a time (one by default).
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from toolhost.config import ParallelLimits
from toolhost.sandbox.approval import is_mutating_tool

from .context import ToolContext
from .errors import FatalError, ToolError
from .registry import ToolRegistry


@dataclass(frozen=True)
class ToolInvocation:
    id: str
    name: str
    arguments: str = ""


@dataclass(frozen=True)
class ToolExecutionResult:
    """Outcome of one invocation; exactly one of ``output``/``error`` is set."""

    id: str
    name: str
    output: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        return self.output if self.error is None else self.error


class ParallelExecutor:
    def __init__(self, limits: Optional[ParallelLimits] = None) -> None:
        self.limits = limits or ParallelLimits()
        self._read_semaphore = asyncio.Semaphore(self.limits.max_concurrent_reads)
        self._write_semaphore = asyncio.Semaphore(self.limits.max_concurrent_writes)

    async def execute_batch(
        self,
        invocations: list[ToolInvocation],
        registry: ToolRegistry,
        context: ToolContext,
    ) -> list[ToolExecutionResult]:
        """Run all invocations and return their results in input order."""
        tasks = [
            asyncio.create_task(self.execute_one(invocation, registry, context))
            for invocation in invocations
        ]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def execute_with_deps(
        self,
        invocations: list[ToolInvocation],
        dependencies: dict[str, list[str]],
        registry: ToolRegistry,
        context: ToolContext,
    ) -> list[ToolExecutionResult]:
        """Run invocations in dependency order, batching whatever is ready.

        ``dependencies`` maps an invocation id to the ids it waits for. If
        nothing is ready (a cycle, or a dependency on an unknown id) the
        remaining invocations run one by one in their given order.
        """
        completed: set[str] = set()
        results: list[ToolExecutionResult] = []
        pending = list(invocations)

        while pending:
            ready = [
                inv for inv in pending
                if all(dep in completed for dep in dependencies.get(inv.id, ()))
            ]
            if not ready:
                logger.warning(
                    f"Unsatisfiable tool dependencies for {[inv.id for inv in pending]}, "
                    "running sequentially"
                )
                for inv in pending:
                    result = await self._run_one(inv, registry, context)
                    completed.add(result.id)
                    results.append(result)
                break

            for result in await self.execute_batch(ready, registry, context):
                completed.add(result.id)
                results.append(result)
            ready_ids = {id(inv) for inv in ready}
            pending = [inv for inv in pending if id(inv) not in ready_ids]

        return results

    async def execute_one(
        self, invocation: ToolInvocation, registry: ToolRegistry, context: ToolContext
    ) -> ToolExecutionResult:
        """Run one invocation under the read or write concurrency limit."""
        if is_mutating_tool(invocation.name):
            semaphore = self._write_semaphore
        else:
            semaphore = self._read_semaphore
        async with semaphore:
            return await self._run_one(invocation, registry, context)

    async def _run_one(
        self, invocation: ToolInvocation, registry: ToolRegistry, context: ToolContext
    ) -> ToolExecutionResult:
        try:
            output = await registry.execute_async(
                invocation.name, invocation.arguments, context
            )
        except ToolError as e:
            return ToolExecutionResult(invocation.id, invocation.name, error=str(e))
        except Exception as e:
            logger.exception(f"Tool {invocation.name} ({invocation.id}) crashed: {e}")
            return ToolExecutionResult(
                invocation.id, invocation.name, error=str(FatalError(str(e)))
            )
        return ToolExecutionResult(invocation.id, invocation.name, output=output)
