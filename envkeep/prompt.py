"""Interactive prompts on stderr, keeping stdout free for shell commands."""
from typing import Optional

import click


class Prompter:
    """Ask the user for passwords and one-letter choices.

    Everything is written to stderr so the calling shell can ``eval`` stdout.
    """

    def password(self, prompt: str) -> str:
        return click.prompt(
            prompt, hide_input=True, prompt_suffix=" ", err=True, default="",
            show_default=False,
        )

    def choice(
        self,
        prompt: str,
        choices: dict[str, str],
        default: Optional[str] = None,
    ) -> str:
        """Read a single-letter choice (case-insensitive).

        Args:
            prompt: Question shown to the user.
            choices: Mapping of letter to returned value, e.g. {"p": "password"}.
            default: Value returned when the user just presses Enter.

        Raises:
            click.UsageError: On empty input without default or an unknown letter.
        """
        answer = click.prompt(
            prompt, prompt_suffix=" ", err=True, default="", show_default=False,
        ).strip().lower()
        if not answer:
            if default is not None:
                return default
            raise click.UsageError("no choice entered")
        if answer[0] in choices:
            return choices[answer[0]]
        raise click.UsageError(f"invalid choice: {answer[0]}")

    def notify(self, message: str) -> None:
        click.echo(message, err=True)
