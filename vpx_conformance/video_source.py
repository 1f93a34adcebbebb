"""
The :py:mod:`vpx_conformance.video_source` module defines the video source
capability used by the :py:class:`~vpx_conformance.driver.ConformanceDriver`
to pull frames, along with some concrete implementations.

A video source is traversed once per encoding pass::

    >>> source.begin()
    >>> while source.current_frame() is not None:
    ...     do_something(source.current_frame(), source.pts(), source.duration())
    ...     source.advance()

.. autoclass:: VideoSource
    :members:

.. autoclass:: GeneratedVideoSource

.. autoclass:: RawFileVideoSource

"""

from fractions import Fraction

from vpx_conformance import file_format


__all__ = [
    "VideoSource",
    "GeneratedVideoSource",
    "RawFileVideoSource",
]


class VideoSource(object):
    """
    Base class for video sources.

    Subclasses must implement :py:meth:`begin`, :py:meth:`advance` and
    :py:meth:`current_frame`. By default frames are given a duration of one
    timebase unit and PTS values equal to their index.
    """

    def __init__(self, timebase=Fraction(1, 30)):
        self._timebase = Fraction(timebase)
        self._index = 0

    def begin(self):
        """Rewind to the first frame."""
        raise NotImplementedError()

    def advance(self):
        """Move to the next frame. Does nothing once the source is exhausted."""
        raise NotImplementedError()

    def current_frame(self):
        """
        Return the current :py:class:`~vpx_conformance.frame.Frame` or None
        when the source is exhausted.
        """
        raise NotImplementedError()

    def frame_index(self):
        return self._index

    def pts(self):
        return self._index * self.duration()

    def duration(self):
        return 1

    def timebase(self):
        return self._timebase


class GeneratedVideoSource(VideoSource):
    """
    A video source producing frames from a frame generator function (e.g.
    one of those in :py:mod:`vpx_conformance.frame_generators`).

    The generator function is called afresh (with the supplied arguments)
    every time :py:meth:`begin` is called so that each encoding pass sees the
    same frames.

    Parameters
    ==========
    generator_function : function(*args, **kwargs) -> iterable of frames
    limit : int or None
        If given, at most this many frames are produced.
    timebase : :py:class:`fractions.Fraction`
    """

    def __init__(self, generator_function, *args, **kwargs):
        self._limit = kwargs.pop("limit", None)
        super(GeneratedVideoSource, self).__init__(
            kwargs.pop("timebase", Fraction(1, 30))
        )
        self._generator_function = generator_function
        self._args = args
        self._kwargs = kwargs
        self._iterator = None
        self._frame = None

    def _pull(self):
        if self._limit is not None and self._index >= self._limit:
            self._frame = None
        else:
            self._frame = next(self._iterator, None)

    def begin(self):
        self._index = 0
        self._iterator = iter(self._generator_function(*self._args, **self._kwargs))
        self._pull()

    def advance(self):
        if self._frame is not None:
            self._index += 1
            self._pull()

    def current_frame(self):
        return self._frame


class RawFileVideoSource(VideoSource):
    """
    A video source reading numbered raw frame files (see
    :py:mod:`vpx_conformance.file_format`) from a directory, in numerical
    order.

    Frames are read lazily, one at a time. The timestamp, duration and
    timebase of each frame are taken from its metadata file.
    """

    def __init__(self, dirname):
        super(RawFileVideoSource, self).__init__()
        self._filenames = file_format.enumerate_frame_files(dirname)
        self._frame = None
        self._metadata = None

    def _load(self):
        if self._index < len(self._filenames):
            self._frame, self._metadata = file_format.read(self._filenames[self._index])
            self._timebase = self._metadata.timebase
        else:
            self._frame = None

    def begin(self):
        self._index = 0
        self._load()

    def advance(self):
        if self._frame is not None:
            self._index += 1
            self._load()

    def current_frame(self):
        return self._frame

    def pts(self):
        if self._frame is None or self._metadata is None:
            return super(RawFileVideoSource, self).pts()
        return self._metadata.pts

    def duration(self):
        if self._metadata is None:
            return 1
        return self._metadata.duration
