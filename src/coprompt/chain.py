from __future__ import annotations
from collections.abc import Callable
from dataclasses import dataclass, field
import logging
from typing import Union

log = logging.getLogger(__name__)

#: What a stage may return: `None` to abstain, a replacement string, or a
#: ``(replacement or None, continue)`` pair
StageResult = Union[None, str, tuple[Union[str, None], bool]]

StageFunc = Callable[[str], StageResult]


@dataclass(frozen=True)
class PromptStage:
    #: Ordering key; stages with lower priorities run first
    priority: int

    #: Called with the prompt text accumulated so far
    func: StageFunc

    def apply(self, prompt: str) -> tuple[str, bool]:
        """
        Offer ``prompt`` to the stage and return the resulting text along with
        whether the chain should continue
        """
        r = self.func(prompt)
        if isinstance(r, tuple):
            text, cont = r
        else:
            text, cont = r, True
        if text is None:
            text = prompt
        return text, cont


@dataclass
class PromptChain:
    """
    An ordered collection of prompt stages.  Each stage is handed the text
    produced by the stages before it and may replace it, append to it,
    abstain, or halt the chain.
    """

    _stages: dict[int, PromptStage] = field(default_factory=dict)

    @property
    def stages(self) -> list[PromptStage]:
        return [self._stages[p] for p in sorted(self._stages)]

    def register(self, priority: int, func: StageFunc) -> PromptStage:
        if priority in self._stages:
            raise ValueError(f"A prompt stage with priority {priority} already exists")
        stage = PromptStage(priority=priority, func=func)
        self._stages[priority] = stage
        return stage

    def stage(self, priority: int) -> Callable[[StageFunc], StageFunc]:
        """Decorator form of `register()`"""

        def decorator(func: StageFunc) -> StageFunc:
            self.register(priority, func)
            return func

        return decorator

    def render(self, prompt: str = "") -> str:
        for st in self.stages:
            prompt, cont = st.apply(prompt)
            if not cont:
                log.debug("Prompt stage %d halted the chain", st.priority)
                break
        return prompt
