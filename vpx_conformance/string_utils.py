"""
The :py:mod:`vpx_conformance.string_utils` module contains a small selection
of string formatting routines used when explaining conformance failures.
"""

from textwrap import wrap, dedent

import re


__all__ = [
    "indent",
    "wrap_paragraphs",
]


RE_INDENTED = re.compile(r"^\s+\S")


def indent(text, prefix="  "):
    """
    Indent every line of the string 'text' with the prefix string 'prefix'
    (including empty lines).
    """
    return "{}{}".format(prefix, ("\n{}".format(prefix)).join(text.split("\n")))


def split_paragraphs(text):
    """
    Deindent a multi-line string and split it into a list of paragraphs.

    Returns a list of (is_indented, [line, ...]) pairs. Paragraphs are
    separated by blank lines. Indented paragraphs (e.g. example command lines
    or tables of values) are flagged so that they may be left unwrapped.
    """
    paragraphs = []
    lines = []
    for line in dedent(text).splitlines():
        if line.strip() == "":
            if lines:
                paragraphs.append(lines)
                lines = []
        else:
            lines.append(line.rstrip())
    if lines:
        paragraphs.append(lines)

    return [
        (all(RE_INDENTED.match(line) for line in lines), lines)
        for lines in paragraphs
    ]


def wrap_paragraphs(text, width=None):
    """
    Re-line-wrap a string made up of hard-line-wrapped paragraphs separated by
    blank lines.

    Indented paragraphs are reproduced verbatim. If 'width' is None, each
    ordinary paragraph is joined onto a single line.
    """
    out = []
    for is_indented, lines in split_paragraphs(text):
        if is_indented:
            out.append("\n".join(lines))
        else:
            joined = " ".join(line.strip() for line in lines)
            if width is None:
                out.append(joined)
            else:
                out.append("\n".join(wrap(joined, width)))
    return "\n\n".join(out)
