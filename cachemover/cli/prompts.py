"""
Interactive prompts.

All operator input goes through a Prompter, which takes the input function
as a constructor argument so the decision points can be driven from tests.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from cachemover.cli.utils import safe_print
from cachemover.core.exceptions import DestinationError
from cachemover.core.filesystem import format_size
from cachemover.core.platform import normalize_root
from cachemover.orchestrator import RunMode, resolve_mode
from cachemover.toolchain.migrator import MigrationRecord

logger = logging.getLogger(__name__)

AFFIRMATIVE = {"y", "yes"}


class Prompter:
    """
    Ask the operator for decisions.

    Args:
        input_func: Function used to read a line (default: ``input``)
        assume_yes: Confirm deletion without asking
        max_attempts: Destination prompts before giving up (None = unlimited)
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        assume_yes: bool = False,
        max_attempts: Optional[int] = None,
    ):
        self.input_func = input_func
        self.assume_yes = assume_yes
        self.max_attempts = max_attempts

    def _ask(self, prompt: str) -> Optional[str]:
        try:
            return self.input_func(prompt)
        except EOFError:
            return None

    def ask_destination(self) -> Path:
        """
        Ask for the destination root until a usable one is entered.

        Raises:
            DestinationError: If input ends (EOF) or attempts run out
        """
        attempts = 0
        while self.max_attempts is None or attempts < self.max_attempts:
            attempts += 1
            answer = self._ask("Destination root for package caches (e.g. D:): ")
            if answer is None:
                raise DestinationError("No destination root given (input closed)")
            try:
                return normalize_root(answer)
            except DestinationError as e:
                print(f"  {e}. Try again.")

        raise DestinationError(
            f"No usable destination root after {self.max_attempts} attempt(s)"
        )

    def choose_mode(self) -> RunMode:
        """Ask whether to reconfigure, verify or quit; defaults to verify."""
        print("Existing cache configuration detected.")
        answer = self._ask("[R]econfigure, [V]erify only, or [Q]uit? [V] ")
        mode = resolve_mode(answer)
        logger.debug(f"Mode answer {answer!r} -> {mode.value}")
        return mode

    def confirm_delete(self, records: List[MigrationRecord]) -> List[MigrationRecord]:
        """
        Ask whether to delete migrated legacy caches; only y/yes confirms.

        With ``assume_yes`` nothing is asked, but records whose copy failed
        the size check are kept.

        Returns:
            Records to delete (empty when declined)
        """
        if self.assume_yes:
            selected = [record for record in records if not record.size_mismatch]
            for record in records:
                if record.size_mismatch:
                    logger.warning(
                        f"Keeping {record.source}: copy is smaller than the "
                        f"original (--yes never deletes these)"
                    )
            logger.info(f"Deleting {len(selected)} legacy cache(s) (--yes given)")
            return selected

        total = sum(record.size for record in records)
        print(f"\n{len(records)} legacy cache(s) were copied ({format_size(total)}):")
        for record in records:
            flag = ""
            if record.size_mismatch:
                flag = "  ⚠️  copy is smaller than the original"
            safe_print(
                f"  {record.toolchain}: {record.source} "
                f"({format_size(record.size)}){flag}"
            )
        answer = self._ask("Delete the old cache directories? [y/N] ")
        if (answer or "").strip().lower() in AFFIRMATIVE:
            return list(records)
        return []
