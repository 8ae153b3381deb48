"""
Scripted operator input for testing interactive prompts.
"""

from typing import Iterable, List


class ScriptedInput:
    """
    Callable replacement for ``input()`` that replays canned answers.

    When the answers run out, EOFError is raised, as ``input()`` does
    when stdin is closed.
    """

    def __init__(self, answers: Iterable[str] = ()):
        self.answers: List[str] = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)
