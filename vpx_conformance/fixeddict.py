r"""
The :py:mod:`vpx_conformance.fixeddict` module provides the
:py:func:`fixeddict` function for creating :py:class:`dict` subclasses which
permit only a preset collection of keys. These are used for the configuration
records passed to codec implementations (e.g.
:py:class:`~vpx_conformance.codec.EncoderConfig`) where a misspelt key would
otherwise be silently ignored by the codec under test.

Example usage::

    >>> from vpx_conformance.fixeddict import fixeddict, Entry
    >>> from vpx_conformance.constants import Deadlines

    >>> RateControl = fixeddict(
    ...     "RateControl",
    ...     Entry("target_bitrate", help_type="int"),
    ...     Entry("deadline", enum=Deadlines),
    ... )

    >>> rc = RateControl(target_bitrate=500, deadline=Deadlines.good)
    >>> print(rc)
    RateControl:
      target_bitrate: 500
      deadline: good (1000000)

    >>> rc["target_bitarte"] = 100
    Traceback (most recent call last):
      ...
    FixedDictKeyError: 'target_bitarte' not allowed in RateControl

Entries whose names begin with an underscore are omitted from the pretty
printed representation.

.. autofunction:: fixeddict

.. autoclass:: Entry

.. autoexception:: FixedDictKeyError

"""

import sys

from collections import OrderedDict

from textwrap import dedent

from vpx_conformance.string_utils import indent


__all__ = [
    "fixeddict",
    "Entry",
    "FixedDictKeyError",
]


class Entry(object):
    """
    Describes one permitted entry of a :py:func:`fixeddict`.

    Parameters
    ==========
    name : str
        The key name.
    formatter : function(value) -> str
        Used when pretty-printing the value. Defaults to :py:func:`str`.
    enum : :py:class:`~enum.Enum`
        If given, values which are members of (or convertible to) this
        enumeration are printed as ``name (value)``.
    help : str
        Optional documentation string.
    help_type : str
        Optional description of the value's type.
    """

    def __init__(self, name, formatter=str, enum=None, help=None, help_type=None):
        self.name = name
        self.formatter = formatter
        self.enum = enum
        self.help = dedent(help).strip() if help is not None else None
        self.help_type = help_type

    def to_string(self, value):
        """
        Convert a value to a string according to this entry's formatting
        rules.
        """
        if self.enum is not None:
            try:
                member = self.enum(value)
            except ValueError:
                pass
            else:
                return "{} ({})".format(member.name, self.formatter(member.value))

        return self.formatter(value)


class FixedDictKeyError(KeyError):
    """
    A :py:exc:`KeyError` raised when a key not permitted by a
    :py:func:`fixeddict` type is used.

    Attributes
    ==========
    key
        The key which was accessed.
    fixeddict_class
        The :py:func:`fixeddict` type involved.
    """

    def __init__(self, key, fixeddict_class):
        super(FixedDictKeyError, self).__init__(key)
        self.key = key
        self.fixeddict_class = fixeddict_class

    def __str__(self):
        return "{!r} not allowed in {}".format(self.key, self.fixeddict_class.__name__)


def fixeddict(name, *entries, **kwargs):
    """
    Create a fixed-entry dictionary type.

    The first argument is the name of the created class, the remaining
    arguments may be strings or :py:class:`Entry` instances naming the
    permitted entries.

    The keyword-only argument 'help' sets the docstring of the returned class
    (the list of permitted entries is appended automatically) and 'module'
    overrides the ``__module__`` of the returned type.

    The class has an attribute ``entry_objs``: an
    :py:class:`~collections.OrderedDict` mapping entry names to
    :py:class:`Entry` objects.
    """
    module = kwargs.pop("module", None)
    help = kwargs.pop("help", None)
    assert not kwargs, "Got unexpected keyword arguments: {}".format(", ".join(kwargs))

    entry_objs = OrderedDict(
        (entry.name, entry)
        for entry in (arg if isinstance(arg, Entry) else Entry(arg) for arg in entries)
    )

    def check_key(self, key):
        if key not in entry_objs:
            raise FixedDictKeyError(key, self.__class__)

    def __init__(self, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        for key in self.keys():
            check_key(self, key)

    def __setitem__(self, key, value):
        check_key(self, key)
        dict.__setitem__(self, key, value)

    def setdefault(self, key, value=None):
        check_key(self, key)
        return dict.setdefault(self, key, value)

    def update(self, *args, **kwargs):
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def copy(self):
        return self.__class__(self)

    def __repr__(self):
        return "{}({{{}}})".format(
            self.__class__.__name__,
            ", ".join(
                "{!r}: {!r}".format(key, self[key]) for key in entry_objs if key in self
            ),
        )

    def __str__(self):
        lines = [
            "{}: {}".format(key, entry.to_string(self[key]))
            for key, entry in entry_objs.items()
            if key in self and not key.startswith("_")
        ]
        if not lines:
            return self.__class__.__name__
        return "{}:\n{}".format(self.__class__.__name__, indent("\n".join(lines)))

    doc = "{}\n\nParameters\n==========\n{}\n".format(
        dedent(help).strip() if help is not None else "A fixed-entry dictionary.",
        "\n".join(
            "{}{}{}".format(
                entry.name,
                " : " + entry.help_type if entry.help_type is not None else "",
                "\n" + indent(entry.help, "    ") if entry.help is not None else "",
            )
            for entry in entry_objs.values()
        ),
    )

    cls = type(
        name,
        (dict,),
        {
            "__init__": __init__,
            "__setitem__": __setitem__,
            "setdefault": setdefault,
            "update": update,
            "copy": copy,
            "__repr__": __repr__,
            "__str__": __str__,
            "__doc__": doc,
            "entry_objs": entry_objs,
        },
    )

    if module is not None:
        cls.__module__ = module
    else:
        try:
            cls.__module__ = sys._getframe(1).f_globals.get("__name__", "__main__")
        except (AttributeError, ValueError):
            pass

    return cls
