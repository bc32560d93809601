"""
FIM prompt templates for the supported code models.
"""

from dataclasses import dataclass
from enum import Enum

# DeepSeek Coder special tokens
DEEPSEEK_FIM_BEGIN = "<｜fim▁begin｜>"
DEEPSEEK_FIM_HOLE = "<｜fim▁hole｜>"
DEEPSEEK_FIM_END = "<｜fim▁end｜>"
DEEPSEEK_EOS = "<｜end▁of▁sentence｜>"


@dataclass(frozen=True)
class FimPromptSpec:
    """A rendered prompt and the stop sequences that end its completion."""

    prompt: str
    stop: tuple[str, ...]


class FimTemplate(Enum):
    """Prompt formats understood by the supported FIM models."""

    CODELLAMA = "codellama"
    DEEPSEEK = "deepseek"
    STABLE_CODE = "stable-code"

    @classmethod
    def from_name(cls, name: str | None) -> "FimTemplate":
        """Resolve a configured format id, defaulting to codellama."""
        try:
            return cls(name)
        except ValueError:
            return cls.CODELLAMA

    def render(
        self,
        prefix: str,
        suffix: str,
        header: str = "",
        file_context: str = "",
        use_file_context: bool = False,
    ) -> FimPromptSpec:
        """Build the prompt for this format.

        Args:
            prefix: Code before the cursor
            suffix: Code after the cursor
            header: Language/path header comment for the active file
            file_context: Related file snippets, used when use_file_context is set
            use_file_context: Whether file_context goes into the prompt

        Returns:
            FimPromptSpec with the prompt and this format's stop sequences.
        """
        context = file_context if use_file_context else ""
        lead = f"{context}{header}{prefix}"

        if self is FimTemplate.DEEPSEEK:
            return FimPromptSpec(
                prompt=f"{DEEPSEEK_FIM_BEGIN}{lead}{DEEPSEEK_FIM_HOLE}{suffix}{DEEPSEEK_FIM_END}",
                stop=(
                    DEEPSEEK_FIM_BEGIN,
                    DEEPSEEK_FIM_HOLE,
                    DEEPSEEK_FIM_END,
                    "<END>",
                    DEEPSEEK_EOS,
                ),
            )

        if self is FimTemplate.STABLE_CODE:
            return FimPromptSpec(
                prompt=f"<fim_prefix>{lead}<fim_suffix>{suffix}<fim_middle>",
                stop=("<|endoftext|>",),
            )

        return FimPromptSpec(
            prompt=f"<PRE> {lead} <SUF>{suffix} <MID>",
            stop=("<EOT>",),
        )
