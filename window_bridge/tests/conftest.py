from __future__ import annotations

from typing import Dict, List, Sequence, Tuple, Union

import pytest

from window_bridge.command_runner import CommandResult

Response = Union[str, CommandResult]


class FakeRun:
    """Stand-in for CommandRunner that answers from canned stdout."""

    def __init__(self, responses: Dict[Tuple[str, ...], Response]) -> None:
        self.responses = responses
        self.calls: List[Tuple[str, ...]] = []

    def __call__(self, executable: str, args: Sequence[str]) -> CommandResult:
        key = (executable, *args)
        self.calls.append(key)
        response = self.responses.get(key)
        if response is None:
            return CommandResult(returncode=0, stdout="", stderr="")
        if isinstance(response, str):
            return CommandResult(returncode=0, stdout=response, stderr="")
        return response


@pytest.fixture
def fake_run():
    def _build(responses: Dict[Tuple[str, ...], Response]) -> FakeRun:
        return FakeRun(responses)

    return _build
