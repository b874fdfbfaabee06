import asyncio
import inspect
from typing import List, Optional

import pytest

from mica_preview.client import PreviewResult
from mica_preview.request import PreviewRequest


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run async test functions without requiring external plugins."""
    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            # Filter funcargs to only include parameters the function expects
            sig = inspect.signature(test_function)
            filtered_args = {k: v for k, v in pyfuncitem.funcargs.items() if k in sig.parameters}
            loop.run_until_complete(test_function(**filtered_args))
        finally:
            loop.close()
            asyncio.set_event_loop(None)
        return True
    return None


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "asyncio: mark async tests")


class ScriptedEvaluator:
    """Evaluator whose calls stay pending until the test resolves them."""

    def __init__(self):
        self.requests: List[PreviewRequest] = []
        self._futures: List[asyncio.Future] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def evaluate(self, request: PreviewRequest) -> PreviewResult:
        future = asyncio.get_running_loop().create_future()
        self.requests.append(request)
        self._futures.append(future)
        return await future

    def resolve(self, index: int, payload=None, *, error: Optional[Exception] = None) -> None:
        future = self._futures[index]
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(PreviewResult(payload=payload))


class ImmediateEvaluator:
    """Evaluator answering every request with the same payload."""

    def __init__(self, payload=None, error: Optional[Exception] = None):
        self.payload = payload if payload is not None else {"data": {"ok": True}}
        self.error = error
        self.requests: List[PreviewRequest] = []

    async def evaluate(self, request: PreviewRequest) -> PreviewResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return PreviewResult(payload=self.payload)


@pytest.fixture
def scripted_evaluator():
    return ScriptedEvaluator()


@pytest.fixture
def immediate_evaluator():
    return ImmediateEvaluator()


@pytest.fixture
def view_source():
    return (
        "selector: {entityKind: X}\n"
        "data: {v: 1}\n"
        "parameters: {properties: {limit: {type: string}}}\n"
    )
