"""Conversion of C names into exported Go identifiers."""

import re

_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def identifier(name: str) -> str:
    """Turn a C name into an exported Go identifier.

    Non-alphanumeric characters separate words; each word is capitalized
    and the words are joined. A leading digit gets an "X" prefix.

        >>> identifier("my_map")
        'MyMap'
        >>> identifier(".rodata")
        'Rodata'
        >>> identifier("func1")
        'Func1'
    """
    words = [word for word in _SEPARATORS.split(name) if word]
    ident = "".join(word[0].upper() + word[1:] for word in words)
    if ident and ident[0].isdigit():
        ident = "X" + ident
    return ident
