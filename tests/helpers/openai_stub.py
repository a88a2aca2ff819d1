"""Test helpers to stub the OpenAI Responses client used by enrichment.py.

The stub pulls the quoted description out of the few-shot user prompt and
returns whatever the test's ``decide`` callable maps it to. Returning an
exception instance makes the stub raise it instead, which lets tests exercise
the fallback path.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable
from typing import Any

_DESCRIPTION_RE = re.compile(r'proper service name: "(.*)"\n')


def extract_description(user_content: str) -> str:
    m = _DESCRIPTION_RE.search(user_content)
    if not m:
        raise AssertionError("enrichment: user content missing the quoted description")
    return m.group(1)


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` shape used by ``enrichment.py``.

    Parameters
    ----------
    decide:
        Receives the raw description and returns the text the model would
        output, or an exception instance to raise.
    calls_out:
        A list appended with each call's kwargs for lightweight assertions.
    """

    def __init__(
        self,
        decide: Callable[[str], str | BaseException],
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        self._decide = decide
        self._calls = calls_out if calls_out is not None else []
        self._lock = threading.Lock()

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                with self._outer._lock:
                    self._outer._calls.append(kwargs)
                outcome = self._outer._decide(extract_description(kwargs["input"]))
                if isinstance(outcome, BaseException):
                    raise outcome

                class _Resp:
                    output_text: str

                resp = _Resp()
                resp.output_text = outcome
                return resp

        self.responses = _Responses(self)

    # Expose the captured calls list for assertions
    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls
