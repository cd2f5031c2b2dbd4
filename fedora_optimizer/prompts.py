"""Operator confirmation gates."""

from fedora_optimizer.config import Context


def _ask(ctx: Context, message: str) -> str:
    # Ctrl-C is left to propagate so the whole run stops at a gate
    try:
        return ctx.prompt(message)
    except EOFError:
        ctx.console.print("\n[warning]End of input, treating as no[/]")
        return ""


def confirm(ctx: Context, question: str) -> bool:
    """y/N gate for non-destructive actions. Only an answer starting with y/Y proceeds."""
    answer = _ask(ctx, f"{question} (y/N): ")
    return answer[:1] in ("y", "Y")


def confirm_phrase(ctx: Context, phrase: str, message: str = "") -> bool:
    """
    Exact-phrase gate reserved for irreversible deletions.

    The input must equal ``phrase`` character for character: no case folding
    and no whitespace stripping.
    """
    if message:
        ctx.console.print(message)
    answer = _ask(ctx, f"--> To confirm, type '{phrase}' (all caps): ")
    confirmed = answer == phrase
    ctx.logger.info(
        f"Phrase gate '{phrase}': {'confirmed' if confirmed else 'not confirmed'}"
    )
    return confirmed
