from typing import List

QUOTE_CHARS = "\"'"
ESCAPE_CHAR = "\\"


def tokenize(text: str) -> List[str]:
    """
    Split a command line into tokens.

    Whitespace separates tokens unless it is quoted or escaped. Either quote
    character may open a quoted run, and only the same character closes it, so
    a ``'`` inside ``"..."`` is literal. A backslash inserts the next character
    verbatim, inside or outside quotes. An unterminated quote runs to the end
    of the input.

    Args:
        text: Raw command text (without the routing prefix)

    Returns:
        List of tokens; empty for blank input
    """
    tokens = []
    current = []
    quote_char = None
    escaped = False

    for char in text:
        if escaped:
            current.append(char)
            escaped = False
            continue

        if char == ESCAPE_CHAR:
            escaped = True
            continue

        if char in QUOTE_CHARS and (quote_char is None or quote_char == char):
            quote_char = None if quote_char else char
            continue

        if char.isspace() and quote_char is None:
            if current:
                tokens.append("".join(current))
                current = []
            continue

        current.append(char)

    if current:
        tokens.append("".join(current))

    return tokens
