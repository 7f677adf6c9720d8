"""
Operator confirmation gate.

Every irreversible network action (store submission, GitHub asset changes) is
preceded by a summary of what is about to happen and requires the operator to
type "yes".
"""

from typing import Callable, Iterable

from extpublish.exceptions import ConfirmationDeclinedError

CONFIRMATION_ANSWER = "yes"


def confirm(
    lines: Iterable[str],
    question: str = 'Publish? (enter "yes"): ',
    input_func: Callable[[str], str] = input,
) -> None:
    """
    Show a summary and block until the operator answers.

    Raises:
        ConfirmationDeclinedError: If the answer is anything but "yes", or stdin is closed.
    """
    prompt = "\n".join([*lines, question])
    try:
        answer = input_func(prompt)
    except EOFError:
        answer = ""
    if answer.strip() != CONFIRMATION_ANSWER:
        raise ConfirmationDeclinedError()
