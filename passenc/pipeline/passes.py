from pathlib import Path
from typing import List, Sequence, Union
from passenc.domain.errors import ConfigurationError
from passenc.domain.models import Pass, Token


class PassCoordinator:
    """Expands a base command into one command per encoding pass."""

    def validate(self, pass_count: int):
        if isinstance(pass_count, bool) or not isinstance(pass_count, int) or pass_count < 1:
            raise ConfigurationError(f"Pass number should be a positive value, got {pass_count!r}.")

    def expand(
        self,
        base_command: Sequence[Token],
        pass_count: int,
        output_path: Union[str, Path],
        log_prefix: Union[str, Path],
    ) -> List[Pass]:
        """Builds pass commands; the output path is always the last token.

        With more than one pass every command gets ``-pass i -passlogfile prefix``
        so later passes read the statistics written by the first one.
        """
        self.validate(pass_count)

        passes = []
        for i in range(1, pass_count + 1):
            command: List[Token] = list(base_command)
            if pass_count > 1:
                command.extend(["-pass", i, "-passlogfile", str(log_prefix)])
            command.append(str(output_path))
            passes.append(Pass(index=i, total=pass_count, command=command))
        return passes
