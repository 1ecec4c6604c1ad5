from __future__ import annotations

from typing import Callable, Optional

from netloy.core.logging_manager import get_logger
from netloy.utils.exceptions import UserCancelledError

logger = get_logger(__name__)

DecisionFunction = Callable[[str], bool]


class Confirm:
    """Blocking yes/no decision point with a headless default.

    The decision function is injected by the caller (the CLI passes a terminal
    prompt). In unattended mode the function is never called and every
    question resolves to its default.

    Attributes:
        unattended: Resolve questions without asking.
        decide: Function returning True for "yes".
    """

    def __init__(self, unattended: bool = False, decide: Optional[DecisionFunction] = None) -> None:
        self.unattended = unattended
        self.decide = decide

    def ask(self, prompt: str, default: bool = True) -> bool:
        """Ask a question.

        Args:
            prompt: Question shown to the operator.
            default: Answer used in unattended mode or without a decision function.

        Returns:
            True when the answer is yes.
        """
        if self.unattended or self.decide is None:
            logger.info("Auto-answering confirmation", prompt=prompt, answer="yes" if default else "no")
            return default
        return bool(self.decide(prompt))

    def require(self, prompt: str) -> None:
        """Ask a question and raise UserCancelledError when the answer is no."""
        if not self.ask(prompt):
            raise UserCancelledError(f"Operation cancelled by user: {prompt}")
